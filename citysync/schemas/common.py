"""Base model shared by every schema exchanged with the mobile client."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model serialised with camelCase keys while accepting snake_case input.

    The mobile client and the persisted snapshot both use camelCase field names
    (``averageRating``, ``locationId``); Python code keeps snake_case attributes.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-compatible camelCase payload, omitting unset optionals."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
