from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from blip.core.lifecycle import DEFAULT_SIGNAL_RADIUS_METERS
from blip.schemas.base import Coordinates

class SignalCreateRequest(Coordinates):
    radius: int = Field(DEFAULT_SIGNAL_RADIUS_METERS, gt=0)
    boost_type: Optional[str] = None

class SignalCreateResponse(BaseModel):
    success: bool = True
    signal_id: str
    expires_at: datetime
    estimated_match_time: str = "30s"
    matches_found: int = 0
