from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from blip.api.deps import client_ip
from blip.core.auth import get_current_user_id
from blip.core.db import get_db
from blip.schemas.reports import ReportCreateRequest, ReportCreateResponse
from blip.services.reports import create_report

router = APIRouter()


@router.post("/create", response_model=ReportCreateResponse)
def report_create(
    payload: ReportCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    device_hash: Optional[str] = Header(default=None, alias="device-hash"),
):
    report = create_report(
        db,
        reporter_id=user_id,
        reported_user_id=payload.reported_user_id,
        report_type=payload.report_type,
        description=payload.description,
        signal_id=payload.signal_id,
        interaction_id=payload.interaction_id,
        device_hash=device_hash,
        ip_address=client_ip(request),
    )
    return ReportCreateResponse(report_id=report.id)
