from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from blip.core.auth import get_current_user_id
from blip.core.db import get_db
from blip.schemas.matches import AcceptMatchResponse, PendingMatchesResponse, SuccessResponse
from blip.services import consent
from blip.services.realtime import REVEAL_CREATED, Publisher, get_publisher, user_channel

router = APIRouter()


@router.get("/pending", response_model=PendingMatchesResponse)
def pending_matches(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return {"matches": consent.list_pending(db, user_id)}


@router.post("/{match_id}/accept", response_model=AcceptMatchResponse)
def accept_match(
    match_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    publisher: Publisher = Depends(get_publisher),
):
    result = consent.acknowledge(db, match_id, user_id)

    if not result.reveal_created:
        return AcceptMatchResponse(reveal_created=False, waiting_for_other=True)

    for uid in (user_id, result.other_user_id):
        publisher.publish(
            user_channel(uid),
            REVEAL_CREATED,
            {
                "mutual_signal_id": match_id,
                "reveal_expires_at": result.reveal_expires_at.isoformat(),
            },
        )

    return AcceptMatchResponse(
        reveal_created=True,
        other_user_profile=result.other_user_profile,
        reveal_expires_at=result.reveal_expires_at,
    )


@router.post("/{match_id}/decline", response_model=SuccessResponse)
def decline_match(
    match_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    consent.decline(db, match_id, user_id)
    return SuccessResponse()
