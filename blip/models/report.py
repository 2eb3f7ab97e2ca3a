import uuid

from sqlalchemy import Column, String, DateTime, Index

from blip.core.db import Base


class Report(Base):
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    reporter_id = Column(String, nullable=False)
    reported_user_id = Column(String, nullable=False, index=True)
    reported_signal_id = Column(String(36), nullable=True)
    reported_interaction_id = Column(String(36), nullable=True)

    report_type = Column(String, nullable=False)
    description = Column(String, nullable=True)

    device_hash = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_reports_reporter_created", "reporter_id", "created_at"),
    )
