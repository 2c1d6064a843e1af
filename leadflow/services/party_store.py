"""
party_store.py — Merge-safe writes to the canonical party tables

A sequence of independent upserts, each committed on its own. A failure in a
later step never rolls back the party row or earlier steps; store_profile
logs it and reports a partial result.

Business Rules:
- Party lookup by national_id, most recently updated row wins
- Existing party: only null fields are filled, known values are never
  overwritten or nulled
- Contacts unique per (party, type, value); duplicates silently skipped
- Addresses deduplicated by fingerprint; link confidence keeps the max
- Financials unique per party; null fields filled, known values kept
- Snapshot unique per party; payload replaced, quality_score = max(old, new)
- Every DB call runs through the store circuit breaker; driver errors become
  DatabaseError and count against the breaker

Called by: services/pipeline.py
Depends on: models/parties.py, circuit_breaker.py
"""

from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from ..circuit_breaker import CircuitBreaker
from ..database import utcnow
from ..errors import DatabaseError
from ..models import (
    Address,
    AddressLink,
    CanonicalParty,
    ContactRecord,
    EnrichmentSnapshot,
    PartyFinancials,
)
from .profile_mapper import EconomicInfo, MappedAddress, MappedContact, MappedProfile

_MERGE_FIELDS = ("display_name", "normalized_name", "birth_date", "sex", "mother_name")
_FINANCIAL_FIELDS = (
    ("reported_income", "income"),
    ("credit_score", "credit_score"),
    ("risk_label", "risk_label"),
    ("risk_score", "risk_score"),
)


@dataclass
class StoreOutcome:
    party_id: int
    contacts_added: int = 0
    addresses_linked: int = 0
    financials_stored: bool = False
    snapshot_stored: bool = False
    failed_steps: list[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failed_steps)


class PartyStore:
    def __init__(self, session: Session, breaker: CircuitBreaker):
        self.session = session
        self.breaker = breaker

    def _guarded(self, step: str, fn, *args):
        def run():
            try:
                return fn(*args)
            except DBAPIError as e:
                self.session.rollback()
                raise DatabaseError(f"{step} failed: {e.__class__.__name__}") from e

        return self.breaker.call(run)

    # ── Party ─────────────────────────────────────────────────────────

    def find_party(self, national_id: str) -> CanonicalParty | None:
        return (
            self.session.query(CanonicalParty)
            .filter(CanonicalParty.national_id == national_id)
            .order_by(CanonicalParty.updated_at.desc(), CanonicalParty.id.desc())
            .first()
        )

    def upsert_party(self, mapped: MappedProfile) -> CanonicalParty:
        return self._guarded("party", self._upsert_party, mapped)

    def _upsert_party(self, mapped: MappedProfile) -> CanonicalParty:
        party = self.find_party(mapped.national_id)
        now = utcnow()
        if party is None:
            party = CanonicalParty(
                kind=mapped.kind,
                national_id=mapped.national_id,
                enriched=True,
                created_at=now,
                updated_at=now,
            )
            for name in _MERGE_FIELDS:
                setattr(party, name, getattr(mapped.basic, name))
            self.session.add(party)
            self.session.commit()
            logger.info("Created party {} for {}", party.id, mapped.national_id)
            return party

        filled = []
        for name in _MERGE_FIELDS:
            new_value = getattr(mapped.basic, name)
            if getattr(party, name) is None and new_value is not None:
                setattr(party, name, new_value)
                filled.append(name)
        if not party.kind:
            party.kind = mapped.kind
        party.enriched = True
        party.updated_at = now
        self.session.commit()
        logger.info("Merged party {} (filled: {})", party.id, ", ".join(filled) or "none")
        return party

    # ── Contacts ──────────────────────────────────────────────────────

    def upsert_contacts(self, party: CanonicalParty, contacts: list[MappedContact]) -> int:
        return self._guarded("contacts", self._upsert_contacts, party.id, contacts)

    def _upsert_contacts(self, party_id: int, contacts: list[MappedContact]) -> int:
        added = 0
        for c in contacts:
            exists = (
                self.session.query(ContactRecord.id)
                .filter_by(party_id=party_id, contact_type=c.contact_type, value=c.value)
                .first()
            )
            if exists:
                continue
            self.session.add(
                ContactRecord(
                    party_id=party_id,
                    contact_type=c.contact_type,
                    value=c.value,
                    is_primary=c.is_primary,
                    is_verified=c.is_verified,
                    confidence=c.confidence,
                    source="broker",
                )
            )
            try:
                self.session.commit()
                added += 1
            except IntegrityError:
                # inserted concurrently by another event for the same party
                self.session.rollback()
        return added

    # ── Addresses ─────────────────────────────────────────────────────

    def upsert_addresses(self, party: CanonicalParty, addresses: list[MappedAddress]) -> int:
        return self._guarded("addresses", self._upsert_addresses, party.id, addresses)

    def _get_or_create_address(self, a: MappedAddress) -> Address:
        fp = a.fingerprint
        address = self.session.query(Address).filter_by(fingerprint=fp).first()
        if address is not None:
            return address
        address = Address(
            fingerprint=fp,
            street_type=a.street_type,
            street=a.street,
            number=a.number,
            complement=a.complement,
            neighborhood=a.neighborhood,
            city=a.city,
            state=a.state,
            postal_code=a.postal_code,
        )
        self.session.add(address)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            address = self.session.query(Address).filter_by(fingerprint=fp).one()
        return address

    def _upsert_addresses(self, party_id: int, addresses: list[MappedAddress]) -> int:
        linked = 0
        for a in addresses:
            address = self._get_or_create_address(a)
            link = self.session.query(AddressLink).filter_by(party_id=party_id, address_id=address.id).first()
            if link is not None:
                link.confidence_score = max(link.confidence_score or 0.0, a.confidence)
                link.is_primary = bool(link.is_primary or a.is_primary)
                if link.relationship_hint is None:
                    link.relationship_hint = a.relationship_hint
                self.session.commit()
                continue
            self.session.add(
                AddressLink(
                    party_id=party_id,
                    address_id=address.id,
                    is_primary=a.is_primary,
                    relationship_hint=a.relationship_hint,
                    confidence_score=a.confidence,
                )
            )
            try:
                self.session.commit()
                linked += 1
            except IntegrityError:
                self.session.rollback()
        return linked

    # ── Financials ────────────────────────────────────────────────────

    def upsert_financials(self, party: CanonicalParty, economic: EconomicInfo) -> PartyFinancials | None:
        """Returns None when the payload carried no economic data."""
        return self._guarded("financials", self._upsert_financials, party.id, economic)

    def _upsert_financials(self, party_id: int, economic: EconomicInfo) -> PartyFinancials | None:
        values = {column: getattr(economic, attr) for column, attr in _FINANCIAL_FIELDS}
        if all(v is None for v in values.values()):
            return None
        row = self.session.query(PartyFinancials).filter_by(party_id=party_id).first()
        if row is None:
            row = PartyFinancials(party_id=party_id, **values)
            self.session.add(row)
        else:
            for column, value in values.items():
                if getattr(row, column) is None and value is not None:
                    setattr(row, column, value)
        self.session.commit()
        return row

    # ── Snapshot ──────────────────────────────────────────────────────

    def upsert_snapshot(self, party: CanonicalParty, payload: dict, quality: float) -> EnrichmentSnapshot:
        return self._guarded("snapshot", self._upsert_snapshot, party.id, payload, quality)

    def _upsert_snapshot(self, party_id: int, payload: dict, quality: float) -> EnrichmentSnapshot:
        snap = self.session.query(EnrichmentSnapshot).filter_by(party_id=party_id).first()
        if snap is None:
            snap = EnrichmentSnapshot(
                party_id=party_id,
                provider="broker",
                raw_payload=payload,
                quality_score=quality,
                enriched_at=utcnow(),
            )
            self.session.add(snap)
        else:
            snap.raw_payload = payload
            snap.quality_score = max(snap.quality_score or 0.0, quality)
            snap.enriched_at = utcnow()
        self.session.commit()
        return snap

    # ── Whole profile ─────────────────────────────────────────────────

    def store_profile(self, mapped: MappedProfile, payload: dict) -> StoreOutcome:
        party = self.upsert_party(mapped)
        outcome = StoreOutcome(party_id=party.id)

        steps = (
            ("contacts", lambda: self.upsert_contacts(party, mapped.contacts)),
            ("addresses", lambda: self.upsert_addresses(party, mapped.addresses)),
            ("financials", lambda: self.upsert_financials(party, mapped.economic)),
            ("snapshot", lambda: self.upsert_snapshot(party, payload, mapped.quality_score)),
        )
        for step, run in steps:
            try:
                result = run()
            except DatabaseError as e:
                logger.error("Store step {} failed for party {}: {}", step, party.id, e)
                outcome.failed_steps.append(step)
                continue
            if step == "contacts":
                outcome.contacts_added = result
            elif step == "addresses":
                outcome.addresses_linked = result
            elif step == "financials":
                outcome.financials_stored = result is not None
            else:
                outcome.snapshot_stored = True
        return outcome
