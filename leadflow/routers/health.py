"""Liveness endpoint with the store breaker state."""

from fastapi import APIRouter, Depends

from .. import __version__
from ..app_state import AppState
from ..dependencies import get_state
from ..schemas.responses import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health(state: AppState = Depends(get_state)):
    return HealthResponse(
        version=__version__,
        store_breaker=state.breaker.current_state,
        cache_backend=state.response_cache.backend,
    )
