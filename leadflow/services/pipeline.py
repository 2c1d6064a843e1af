"""
pipeline.py — Per-event enrichment orchestrator

One run per accepted ledger event, in the background:

    processing → validate contacts → resolve identity → per identity:
    recency gate → broker (cached) → map → store → record recency
    → format message → CRM → completed

Business Rules:
- Any exception fails the event with a short human-readable reason; the raw
  exception chain is logged, never stored
- An open store circuit fails that identity before any broker call
- Each identity is enriched independently; a broker, mapping or store failure
  for one is recorded on its outcome and does not stop the other
- Different people: the warning header is kept and every person who could
  not be enriched gets a status block
- All identities suppressed by recency → completed, no CRM message
- Nothing enriched and nothing suppressed → the first identity failure, or
  not-found
- A partial store write is logged and reported, the event still completes

Called by: tasks.TaskSupervisor (spawned from routers/webhooks.py)
Depends on: ledger_service, identity_service, enrichment_client,
            profile_mapper, party_store, message_service
"""

from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from ..cache.recency import RecencySuppressor
from ..circuit_breaker import CircuitBreaker
from ..errors import (
    CircuitOpenError,
    DatabaseError,
    ExternalServiceError,
    InternalError,
    LeadflowError,
    NotFoundError,
    ValidationError,
    user_facing_reason,
)
from ..schemas.webhooks import RawEvent
from ..utils.contact_validation import canonicalize_contacts
from . import ledger_service
from .enrichment_client import EnrichmentClient
from .identity_service import IdentityResolution, resolve_identity
from .message_service import format_message
from .party_store import PartyStore
from .profile_mapper import map_profile

ENRICHED = "enriched"
SUPPRESSED = "suppressed"
FAILED = "failed"
NOT_FOUND = "not_found"


@dataclass
class IdentityOutcome:
    national_id: str
    channel: str
    status: str = FAILED
    party_id: int | None = None
    store_failures: list[str] = field(default_factory=list)
    error: str | None = None
    payload: dict | None = field(default=None, repr=False)
    exc: LeadflowError | None = field(default=None, repr=False)


@dataclass
class PipelineOutcome:
    lead_id: str
    occurred_at: datetime
    status: str = "processing"
    resolution: IdentityResolution | None = None
    identities: list[IdentityOutcome] = field(default_factory=list)
    message: str | None = None
    error: str | None = None

    def by_status(self, status: str) -> list[IdentityOutcome]:
        return [i for i in self.identities if i.status == status]


class EnrichmentPipeline:
    def __init__(
        self,
        session_factory,
        directory,
        enrichment: EnrichmentClient,
        crm,
        recency: RecencySuppressor,
        breaker: CircuitBreaker,
    ):
        self.session_factory = session_factory
        self.directory = directory
        self.enrichment = enrichment
        self.crm = crm
        self.recency = recency
        self.breaker = breaker

    async def run(self, lead_id: str, occurred_at: datetime, event: RawEvent) -> PipelineOutcome:
        outcome = PipelineOutcome(lead_id=lead_id, occurred_at=occurred_at)
        db = self.session_factory()
        try:
            if not ledger_service.mark_processing(db, lead_id, occurred_at):
                outcome.status = "skipped"
                return outcome
            try:
                await self._enrich(db, event, outcome)
            except Exception as exc:
                reason = user_facing_reason(exc)
                if isinstance(exc, LeadflowError):
                    logger.warning("Lead {} failed: {} ({})", lead_id, reason, exc.message)
                else:
                    logger.exception("Lead {} failed unexpectedly", lead_id)
                outcome.status = FAILED
                outcome.error = reason
                ledger_service.mark_failed(db, lead_id, occurred_at, reason)
                return outcome
            ledger_service.mark_completed(db, lead_id, occurred_at)
            return outcome
        finally:
            db.close()

    async def _enrich(self, db, event: RawEvent, outcome: PipelineOutcome) -> None:
        customer = event.customer
        if not customer.phone and not customer.email:
            raise ValidationError("Lead has no phone or email")
        contacts = canonicalize_contacts(customer.phone, customer.email)
        if contacts.is_empty:
            raise ValidationError("Lead has no valid phone or email")

        resolution = await resolve_identity(contacts, self.directory)
        outcome.resolution = resolution
        store = PartyStore(db, self.breaker)

        for national_id, channel in resolution.targets():
            outcome.identities.append(await self._enrich_identity(store, national_id, channel))

        enriched = outcome.by_status(ENRICHED)
        if not enriched:
            if outcome.by_status(SUPPRESSED):
                logger.info("Lead {}: all identities enriched recently — nothing to send", outcome.lead_id)
                outcome.status = SUPPRESSED
                return
            failed = outcome.by_status(FAILED)
            if failed:
                raise failed[0].exc or ExternalServiceError("No identity could be enriched", service="broker")
            raise NotFoundError("Broker has no record for the resolved identity")

        outcome.message = format_message(
            [(i.channel, i.payload) for i in enriched],
            same_person=resolution.same_person,
            phone=contacts.phone,
            email=contacts.email,
            different_people=resolution.different_people,
            unavailable=[(i.channel, i.status) for i in outcome.identities if i.status != ENRICHED],
        )
        await self.crm.send_message(outcome.lead_id, outcome.message)
        outcome.status = "completed"
        logger.info(
            "Lead {} completed: {} enriched, {} suppressed, {} failed",
            outcome.lead_id,
            len(enriched),
            len(outcome.by_status(SUPPRESSED)),
            len(outcome.by_status(FAILED)),
        )

    async def _enrich_identity(self, store: PartyStore, national_id: str, channel: str) -> IdentityOutcome:
        """Enrich one identity. Failures are recorded on the outcome, never raised,
        so one person's failure leaves the other's committed enrichment intact."""
        result = IdentityOutcome(national_id=national_id, channel=channel)
        if self.recency.should_suppress(national_id):
            result.status = SUPPRESSED
            return result

        try:
            if self.breaker.current_state == "open":
                raise CircuitOpenError(self.breaker.name)
            payload = await self.enrichment.fetch_profile(national_id)
            try:
                mapped = map_profile(national_id, payload)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise InternalError(f"Broker payload for {national_id} could not be mapped: {e!r}") from e
            stored = store.store_profile(mapped, payload)
        except NotFoundError as e:
            logger.info("Broker has no record for {}", national_id)
            result.status = NOT_FOUND
            result.error = e.public_message
            return result
        except (ExternalServiceError, DatabaseError, InternalError) as e:
            logger.warning("Enrichment failed for {}: {}", national_id, e.message)
            result.status = FAILED
            result.error = e.public_message
            result.exc = e
            return result

        self.recency.record(national_id)
        result.status = ENRICHED
        result.party_id = stored.party_id
        result.store_failures = stored.failed_steps
        result.payload = payload
        if stored.partial:
            logger.warning("Partial store for {}: failed steps {}", national_id, stored.failed_steps)
        return result
