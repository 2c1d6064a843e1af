"""Shared outbound HTTP client — connection pooling for collaborator calls.

One httpx.AsyncClient per application, created in the lifespan and closed on
shutdown. Every request carries the bounded HTTP_TIMEOUT_SECONDS timeout;
a timeout surfaces as ExternalServiceError in the connectors and is not
retried.
"""

import httpx

_LIMITS = httpx.Limits(
    max_connections=50,
    max_keepalive_connections=20,
    keepalive_expiry=30,
)


def build_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        limits=_LIMITS,
        follow_redirects=False,
    )


async def close_client(client: httpx.AsyncClient) -> None:
    """Shut down a shared client. Call from app lifespan shutdown."""
    try:
        await client.aclose()
    except RuntimeError:
        pass
