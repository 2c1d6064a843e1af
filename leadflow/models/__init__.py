"""Database models — re-exports all models.

Import from here:  from leadflow.models import InboundEvent, CanonicalParty
Or from submodules: from leadflow.models.parties import CanonicalParty
"""

from .base import Base  # noqa: F401

# Event ledger
from .events import (  # noqa: F401
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PROCESSING,
    STATUS_RECEIVED,
    InboundEvent,
)

# Canonical parties
from .parties import (  # noqa: F401
    Address,
    AddressLink,
    CanonicalParty,
    ContactRecord,
    EnrichmentSnapshot,
    PartyFinancials,
)
