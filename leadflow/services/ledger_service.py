"""
ledger_service.py — Event ledger: idempotent intake and status transitions

Usage:
    result = ingest(db, payload, spawn=supervisor_spawn)
    mark_processing(db, lead_id, occurred_at)
    mark_completed(db, lead_id, occurred_at)
    mark_failed(db, lead_id, occurred_at, "No national identity found ...")

Business Rules:
- Natural key is (lead_id, occurred_at); occurred_at comes from
  attributes.updated_at
- An existing key is a duplicate: counted, skipped, no background work
- A unique-constraint race on insert is also a duplicate
- Missing lead_id or missing/unparsable timestamp fails that event only
- ingest never waits for enrichment; spawn() hands off and returns
- Status updates are scoped by natural key AND expected current status, so a
  stale writer can never clobber a newer outcome; zero rows → warning
- Rows are never deleted

Called by: routers/webhooks.py, services/pipeline.py, tasks.py
Depends on: models/events.py
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from loguru import logger
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from ..database import utcnow
from ..errors import DatabaseError, ValidationError
from ..models import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PROCESSING,
    STATUS_RECEIVED,
    InboundEvent,
)
from ..schemas.webhooks import RawEvent, WebhookPayload

_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S.%f %z",
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
)


@dataclass
class IngestResult:
    received: int = 0
    processed: int = 0
    duplicates: int = 0
    failed: int = 0


def parse_occurred_at(raw: str | None) -> datetime:
    """RFC 3339 first, then "YYYY-MM-DD HH:MM:SS[.f] ±zzzz", then naive as UTC."""
    if not raw or not str(raw).strip():
        raise ValidationError("Missing updated_at")
    s = str(raw).strip()
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        parsed = None
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(s, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        raise ValidationError(f"Unparsable updated_at: {s!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def find_event(db: Session, lead_id: str, occurred_at: datetime) -> InboundEvent | None:
    return db.query(InboundEvent).filter_by(lead_id=lead_id, occurred_at=occurred_at).first()


def _raw_payload(event: RawEvent) -> dict:
    if isinstance(event.raw, dict):
        return event.raw
    return event.model_dump(mode="json")


def ingest(
    db: Session,
    payload: WebhookPayload,
    spawn: Callable[[str, datetime, RawEvent], None] | None = None,
) -> IngestResult:
    result = IngestResult(received=len(payload.events))

    for event in payload.events:
        if not event.lead_id:
            logger.warning("Webhook event without lead id — skipped")
            result.failed += 1
            continue
        try:
            occurred_at = parse_occurred_at(event.attributes.updated_at)
        except ValidationError as e:
            logger.warning("Lead {}: {} — event skipped", event.lead_id, e.message)
            result.failed += 1
            continue

        try:
            if find_event(db, event.lead_id, occurred_at) is not None:
                logger.info("Duplicate event {} @ {} — skipped", event.lead_id, occurred_at.isoformat())
                result.duplicates += 1
                continue

            db.add(
                InboundEvent(
                    lead_id=event.lead_id,
                    occurred_at=occurred_at,
                    action_kind=event.hook_action,
                    raw_payload=_raw_payload(event),
                    status=STATUS_RECEIVED,
                    received_at=utcnow(),
                )
            )
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info("Duplicate event {} @ {} (concurrent insert)", event.lead_id, occurred_at.isoformat())
                result.duplicates += 1
                continue
        except DBAPIError as e:
            db.rollback()
            raise DatabaseError(f"Ledger write failed: {e.__class__.__name__}") from e

        result.processed += 1
        logger.info("Accepted event {} @ {}", event.lead_id, occurred_at.isoformat())
        if spawn is not None:
            spawn(event.lead_id, occurred_at, event)

    return result


def _transition(
    db: Session,
    lead_id: str,
    occurred_at: datetime,
    expected: tuple[str, ...],
    values: dict,
) -> bool:
    values = {**values, "updated_at": utcnow()}
    try:
        rows = (
            db.query(InboundEvent)
            .filter(
                InboundEvent.lead_id == lead_id,
                InboundEvent.occurred_at == occurred_at,
                InboundEvent.status.in_(expected),
            )
            .update(values, synchronize_session=False)
        )
        db.commit()
    except DBAPIError as e:
        db.rollback()
        raise DatabaseError(f"Ledger update failed: {e.__class__.__name__}") from e
    if rows == 0:
        logger.warning(
            "Ledger transition to {} matched no row for {} @ {} (expected status {})",
            values.get("status"),
            lead_id,
            occurred_at.isoformat(),
            "/".join(expected),
        )
        return False
    return True


def mark_processing(db: Session, lead_id: str, occurred_at: datetime) -> bool:
    return _transition(db, lead_id, occurred_at, (STATUS_RECEIVED,), {"status": STATUS_PROCESSING})


def mark_completed(db: Session, lead_id: str, occurred_at: datetime) -> bool:
    return _transition(
        db,
        lead_id,
        occurred_at,
        (STATUS_PROCESSING,),
        {"status": STATUS_COMPLETED, "error": None, "processed_at": utcnow()},
    )


def mark_failed(db: Session, lead_id: str, occurred_at: datetime, reason: str) -> bool:
    return _transition(
        db,
        lead_id,
        occurred_at,
        (STATUS_RECEIVED, STATUS_PROCESSING),
        {"status": STATUS_FAILED, "error": reason[:1000], "processed_at": utcnow()},
    )


def find_stuck_events(db: Session, older_than: timedelta) -> list[InboundEvent]:
    """Events left in processing longer than older_than (crashed or killed workers)."""
    cutoff = utcnow() - older_than
    return (
        db.query(InboundEvent)
        .filter(InboundEvent.status == STATUS_PROCESSING, InboundEvent.updated_at < cutoff)
        .order_by(InboundEvent.updated_at)
        .all()
    )
