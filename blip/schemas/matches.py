from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from blip.schemas.users import PublicProfile

class PendingMatch(BaseModel):
    mutual_signal_id: str
    expires_at: datetime
    other_user_id: str
    acknowledged: bool
    distance_meters: float
    time_remaining: int

class PendingMatchesResponse(BaseModel):
    matches: List[PendingMatch]

class AcceptMatchResponse(BaseModel):
    success: bool = True
    reveal_created: bool
    waiting_for_other: bool = False
    other_user_profile: Optional[PublicProfile] = None
    reveal_expires_at: Optional[datetime] = None

class SuccessResponse(BaseModel):
    success: bool = True
