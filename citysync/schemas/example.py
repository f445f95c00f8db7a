"""Schemas for the echo procedure used to check client connectivity."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class HiResponse(BaseModel):
    hello: str
    date: datetime
