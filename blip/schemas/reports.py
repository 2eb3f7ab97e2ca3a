from typing import Optional
from pydantic import BaseModel, Field

class ReportCreateRequest(BaseModel):
    reported_user_id: str
    report_type: str = Field(..., min_length=1)
    description: Optional[str] = None
    signal_id: Optional[str] = None
    interaction_id: Optional[str] = None

class ReportCreateResponse(BaseModel):
    success: bool = True
    report_id: str
