"""
schemas/webhooks.py — CRM webhook payload models

The CRM posts either a single lead event object or an array of them. The
shape is resolved exactly once, in WebhookPayload.from_json, into a tagged
union; nothing downstream branches on object-vs-array again.

Business Rules:
- A body that is neither an object nor an array is a ValidationError (400)
- A malformed element inside a batch does not reject the batch: it becomes a
  RawEvent with no lead_id and is counted as failed by the ledger
- Unknown fields are preserved (extra="allow") and stored on the ledger row

Called by: routers/webhooks.py, services/ledger_service.py
Depends on: pydantic
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError


class Customer(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    email: str | None = None
    phone: str | None = None


class LeadStatus(BaseModel):
    model_config = ConfigDict(extra="allow")

    alias: str | None = None
    name: str | None = None


class Attributes(BaseModel):
    model_config = ConfigDict(extra="allow")

    updated_at: str | None = None
    customer: Customer | None = None
    lead_status: LeadStatus | None = None


class RawEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    hook_action: str | None = None
    attributes: Attributes = Field(default_factory=Attributes)
    raw: Any = Field(default=None, exclude=True)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @property
    def lead_id(self) -> str | None:
        return self.id

    @property
    def customer(self) -> Customer:
        return self.attributes.customer or Customer()

    @classmethod
    def parse_item(cls, item: Any) -> "RawEvent":
        """Parse one element. Malformed → an empty event carrying the raw item."""
        if not isinstance(item, dict):
            return cls(raw=item)
        try:
            event = cls.model_validate(item)
        except PydanticValidationError:
            return cls(raw=item)
        event.raw = item
        return event


class WebhookPayload(BaseModel):
    kind: Literal["single", "batch"]
    events: list[RawEvent]

    @classmethod
    def from_json(cls, obj: Any) -> "WebhookPayload":
        if isinstance(obj, dict):
            return cls(kind="single", events=[RawEvent.parse_item(obj)])
        if isinstance(obj, list):
            return cls(kind="batch", events=[RawEvent.parse_item(item) for item in obj])
        raise ValidationError("Webhook body must be a JSON object or array")


class IngestResponse(BaseModel):
    status: str = "received"
    received: int = 0
    processed: int = 0
    duplicates: int = 0
    failed: int = 0
