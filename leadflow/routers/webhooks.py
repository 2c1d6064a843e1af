"""CRM webhook — idempotent intake of lead lifecycle events.

Answers as soon as new events are on the ledger; enrichment runs in the
background and its outcome is visible only on the ledger row.
"""

import json

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..app_state import AppState
from ..config import settings
from ..database import get_db
from ..dependencies import (
    enforce_payload_limit,
    get_state,
    read_limited_body,
    require_webhook_secret,
)
from ..errors import ValidationError
from ..rate_limit import limiter
from ..schemas.webhooks import IngestResponse, WebhookPayload
from ..services import ledger_service

router = APIRouter(tags=["webhooks"])


@router.post(
    "/api/v1/webhooks/crm",
    response_model=IngestResponse,
    dependencies=[Depends(require_webhook_secret), Depends(enforce_payload_limit)],
)
@limiter.limit(lambda: settings.rate_limit_webhook)
async def crm_webhook(
    request: Request,
    db: Session = Depends(get_db),
    state: AppState = Depends(get_state),
):
    """Accept one event object or an array of them."""
    body = await read_limited_body(request)
    try:
        obj = json.loads(body)
    except ValueError:
        raise ValidationError("Request body is not valid JSON")

    payload = WebhookPayload.from_json(obj)
    result = ledger_service.ingest(db, payload, spawn=state.spawn_pipeline)
    return IngestResponse(
        received=result.received,
        processed=result.processed,
        duplicates=result.duplicates,
        failed=result.failed,
    )
