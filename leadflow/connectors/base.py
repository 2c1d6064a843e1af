"""Base connector — one shared httpx client, uniform error mapping.

Timeouts, transport errors and unexpected status codes all surface as
ExternalServiceError tagged with the connector's service name. Calls are
never retried here; a failed call fails the event.
"""

import httpx
from loguru import logger

from ..errors import ExternalServiceError


class BaseConnector:
    service = "external"

    def __init__(self, http: httpx.AsyncClient, base_url: str):
        self.http = http
        self.base_url = base_url.rstrip("/")

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def _request(self, method: str, path: str, expected: tuple[int, ...] = (200,), **kwargs) -> httpx.Response:
        if not self.configured:
            raise ExternalServiceError(f"{self.service} base URL not configured", service=self.service)
        url = f"{self.base_url}{path}"
        try:
            resp = await self.http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("{} timeout: {} {}", self.service, method, path)
            raise ExternalServiceError(f"{self.service} timeout", service=self.service) from e
        except httpx.HTTPError as e:
            logger.warning("{} transport error: {}", self.service, e)
            raise ExternalServiceError(f"{self.service} unreachable: {e}", service=self.service) from e

        if resp.status_code not in expected:
            logger.warning("{} returned {}: {}", self.service, resp.status_code, resp.text[:200])
            raise ExternalServiceError(f"{self.service} returned HTTP {resp.status_code}", service=self.service)
        return resp
