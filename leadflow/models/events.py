"""Event ledger — one row per (lead, lifecycle timestamp) received from the CRM.

The natural key (lead_id, occurred_at) is the idempotency key: a redelivered
webhook maps onto the existing row and is never processed twice. Rows are
never deleted.
"""

from sqlalchemy import JSON, Column, Index, Integer, String, Text, UniqueConstraint

from ..database import UTCDateTime, utcnow
from .base import Base

STATUS_RECEIVED = "received"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class InboundEvent(Base):
    __tablename__ = "inbound_events"
    id = Column(Integer, primary_key=True)
    lead_id = Column(String(100), nullable=False)
    occurred_at = Column(UTCDateTime, nullable=False)
    action_kind = Column(String(50))
    raw_payload = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default=STATUS_RECEIVED)
    error = Column(Text)
    received_at = Column(UTCDateTime, default=utcnow)
    processed_at = Column(UTCDateTime)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("lead_id", "occurred_at", name="uq_inbound_events_lead_occurred"),
        Index("ix_inbound_events_status", "status"),
    )
