from typing import Optional

from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy.orm import Session

from blip.api.deps import throttle_pings
from blip.core.db import get_db
from blip.schemas.presence import NearbyDot, PresencePingRequest, PresencePingResponse
from blip.services.presence import query_nearby, upsert_presence

router = APIRouter()


@router.post("/ping", response_model=PresencePingResponse)
def presence_ping(
    payload: PresencePingRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(throttle_pings),
):
    if user_id:
        upsert_presence(db, user_id, payload.lat, payload.lng, payload.device_hash)

    dots = query_nearby(db, payload.lat, payload.lng, exclude_user_id=user_id)
    logger.debug(f"Ping | guest={user_id is None} dots={len(dots)}")

    return PresencePingResponse(
        is_guest=user_id is None,
        nearby_dots=[NearbyDot(lat=d.lat, lng=d.lng) for d in dots],
    )
