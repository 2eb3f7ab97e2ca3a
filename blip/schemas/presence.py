from typing import List, Optional
from pydantic import BaseModel

from blip.schemas.base import Coordinates

class PresencePingRequest(Coordinates):
    device_hash: Optional[str] = None

class NearbyDot(BaseModel):
    lat: float
    lng: float

class PresencePingResponse(BaseModel):
    success: bool = True
    is_guest: bool
    nearby_dots: List[NearbyDot]
