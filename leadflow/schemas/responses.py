"""Response models for the non-webhook endpoints."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    store_breaker: str
    cache_backend: str
