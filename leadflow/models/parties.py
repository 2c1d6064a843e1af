"""Canonical party models — people/companies, contacts, addresses, financials, snapshots."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import UTCDateTime, utcnow
from .base import Base


class CanonicalParty(Base):
    """One real-world person or company.

    national_id is indexed but not unique: historical duplicates may exist and
    the store always resolves to the most recently updated row.
    """

    __tablename__ = "parties"
    id = Column(Integer, primary_key=True)
    kind = Column(String(20), nullable=False, default="person")
    national_id = Column(String(20), nullable=False)
    display_name = Column(String(255))
    normalized_name = Column(String(255))
    birth_date = Column(Date)
    sex = Column(String(1))
    mother_name = Column(String(255))
    enriched = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow)

    contacts = relationship("ContactRecord", back_populates="party", cascade="all, delete-orphan")
    address_links = relationship("AddressLink", back_populates="party", cascade="all, delete-orphan")
    snapshot = relationship("EnrichmentSnapshot", back_populates="party", uselist=False)
    financials = relationship("PartyFinancials", back_populates="party", uselist=False)

    __table_args__ = (
        Index("ix_parties_national_id", "national_id"),
        Index("ix_parties_national_id_updated", "national_id", "updated_at"),
    )


class ContactRecord(Base):
    __tablename__ = "party_contacts"
    id = Column(Integer, primary_key=True)
    party_id = Column(Integer, ForeignKey("parties.id", ondelete="CASCADE"), nullable=False)
    contact_type = Column(String(20), nullable=False)  # email | phone | whatsapp
    value = Column(String(255), nullable=False)
    is_primary = Column(Boolean, default=False)
    is_verified = Column(Boolean, default=False)
    confidence = Column(Float, default=0.7)
    source = Column(String(50), default="broker")
    created_at = Column(UTCDateTime, default=utcnow)

    party = relationship("CanonicalParty", back_populates="contacts")

    __table_args__ = (
        UniqueConstraint("party_id", "contact_type", "value", name="uq_party_contacts_type_value"),
        Index("ix_party_contacts_value", "value"),
    )


class Address(Base):
    __tablename__ = "addresses"
    id = Column(Integer, primary_key=True)
    fingerprint = Column(String(64), nullable=False, unique=True)
    street_type = Column(String(50))
    street = Column(String(255))
    number = Column(String(50))
    complement = Column(String(255))
    neighborhood = Column(String(255))
    city = Column(String(255))
    state = Column(String(2))
    postal_code = Column(String(8))
    created_at = Column(UTCDateTime, default=utcnow)


class AddressLink(Base):
    __tablename__ = "party_addresses"
    id = Column(Integer, primary_key=True)
    party_id = Column(Integer, ForeignKey("parties.id", ondelete="CASCADE"), nullable=False)
    address_id = Column(Integer, ForeignKey("addresses.id", ondelete="CASCADE"), nullable=False)
    is_primary = Column(Boolean, default=False)
    relationship_hint = Column(String(50))
    confidence_score = Column(Float, nullable=False, default=0.5)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    party = relationship("CanonicalParty", back_populates="address_links")
    address = relationship("Address")

    __table_args__ = (
        UniqueConstraint("party_id", "address_id", name="uq_party_addresses_party_address"),
    )


class EnrichmentSnapshot(Base):
    """Latest raw broker payload per party. quality_score never decreases."""

    __tablename__ = "party_enrichments"
    id = Column(Integer, primary_key=True)
    party_id = Column(Integer, ForeignKey("parties.id", ondelete="CASCADE"), nullable=False, unique=True)
    provider = Column(String(50), nullable=False, default="broker")
    raw_payload = Column(JSON, nullable=False, default=dict)
    quality_score = Column(Float, nullable=False, default=0.0)
    enriched_at = Column(UTCDateTime, default=utcnow)

    party = relationship("CanonicalParty", back_populates="snapshot")


class PartyFinancials(Base):
    """Economic profile per party: reported income, credit score, risk.

    Merged like the party row: a known value is never overwritten or nulled.
    """

    __tablename__ = "party_financials"
    id = Column(Integer, primary_key=True)
    party_id = Column(Integer, ForeignKey("parties.id", ondelete="CASCADE"), nullable=False, unique=True)
    reported_income = Column(Float)
    credit_score = Column(Integer)
    risk_label = Column(String(50))
    risk_score = Column(Float)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    party = relationship("CanonicalParty", back_populates="financials")
