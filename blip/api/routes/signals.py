from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from blip.api.deps import throttle_signals
from blip.core.db import get_db
from blip.schemas.signals import SignalCreateRequest, SignalCreateResponse
from blip.services.realtime import MATCH_FOUND, Publisher, get_publisher, user_channel
from blip.services.signals import create_signal

router = APIRouter()


@router.post("/create", response_model=SignalCreateResponse)
def signal_create(
    payload: SignalCreateRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(throttle_signals),
    publisher: Publisher = Depends(get_publisher),
):
    result = create_signal(
        db,
        user_id,
        payload.lat,
        payload.lng,
        radius=payload.radius,
        boosted=bool(payload.boost_type),
    )

    for match in result.matches:
        for uid in match.participants():
            publisher.publish(
                user_channel(uid),
                MATCH_FOUND,
                {
                    "mutual_signal_id": match.id,
                    "expires_at": match.expires_at.isoformat(),
                    "distance_meters": match.distance_meters,
                },
            )

    return SignalCreateResponse(
        signal_id=result.signal.id,
        expires_at=result.signal.expires_at,
        matches_found=len(result.matches),
    )
