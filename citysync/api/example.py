from datetime import UTC, datetime

from fastapi import APIRouter, Query

from citysync.schemas.example import HiResponse

router = APIRouter()


@router.get("/hi", response_model=HiResponse)
async def hi(name: str = Query(..., description="Name to greet.")) -> HiResponse:
    """Echo a greeting; used by the mobile client as a connectivity check."""

    return HiResponse(hello=f"Hello {name}!", date=datetime.now(UTC))
