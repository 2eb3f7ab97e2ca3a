from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from blip.schemas.base import BaseSchema
from blip.schemas.users import PublicProfile

class SendMessageRequest(BaseModel):
    reveal_id: str
    content: str = Field(..., min_length=1)

class SendMessageResponse(BaseModel):
    success: bool = True
    interaction_id: str

class InteractionOut(BaseSchema):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    created_at: datetime
    expires_at: datetime

class InteractionListResponse(BaseModel):
    interactions: List[InteractionOut]

class ActiveReveal(BaseModel):
    id: str
    mutual_signal_id: str
    viewed_id: str
    expires_at: datetime
    last_viewed_at: Optional[datetime] = None
    profile: PublicProfile

class ActiveRevealsResponse(BaseModel):
    reveals: List[ActiveReveal]
