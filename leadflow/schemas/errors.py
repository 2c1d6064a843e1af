"""
schemas/errors.py — Structured error response model

Shared by the LeadflowError, HTTPException, RequestValidationError and
RateLimitExceeded handlers in main.py.
"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    message: str = ""
    status_code: int
    request_id: str = ""
    detail: list | None = None
