from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from blip.schemas.base import BaseSchema

class PublicProfile(BaseSchema):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    short_bio: Optional[str] = None

# email/password are checked in the service so the error text stays stable
class UserCreateRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    short_bio: Optional[str] = None
    age_range: Optional[str] = None
    interests: Optional[List[str]] = None

class UserOut(PublicProfile):
    id: str
    email: Optional[str] = None
    age_range: Optional[str] = None
    interests: Optional[List[str]] = None
    subscription_tier: str
    max_distance_meters: int
    visibility_preference: str

class UserCreateResponse(BaseModel):
    success: bool = True
    message: str = "Signup successful. Please check your email to verify your account."
    user: UserOut
    email_sent: bool = True
    requires_verification: bool = True

class ProfileOut(PublicProfile):
    subscription_tier: str
    signals_today: int

class ProfileResponse(BaseModel):
    profile: ProfileOut

class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    short_bio: Optional[str] = None

class ProfileUpdateResponse(BaseModel):
    success: bool = True
    profile: ProfileOut

class UserStatsResponse(BaseModel):
    signals_today: int
    total_matches: int
    successful_matches: int
    account_age_days: int
    subscription_tier: str

class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
