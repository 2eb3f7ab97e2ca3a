from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from blip.core.auth import get_current_user_id
from blip.core.db import get_db
from blip.schemas.interactions import (
    ActiveRevealsResponse,
    InteractionListResponse,
    InteractionOut,
    SendMessageRequest,
    SendMessageResponse,
)
from blip.services import reveals
from blip.services.realtime import Publisher, get_publisher

router = APIRouter()


@router.post("/interactions/message", response_model=SendMessageResponse)
def message_send(
    payload: SendMessageRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    publisher: Publisher = Depends(get_publisher),
):
    msg = reveals.send_message(db, payload.reveal_id, user_id, payload.content, publisher=publisher)
    return SendMessageResponse(interaction_id=msg.id)


@router.get("/interactions/{reveal_id}", response_model=InteractionListResponse)
def message_list(
    reveal_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    msgs = reveals.list_messages(db, reveal_id, user_id)
    return InteractionListResponse(interactions=[InteractionOut.model_validate(m) for m in msgs])


@router.get("/reveals/active", response_model=ActiveRevealsResponse)
def active_reveals(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return {"reveals": reveals.list_active_reveals(db, user_id)}
