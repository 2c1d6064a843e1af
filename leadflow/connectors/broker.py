"""Person-data broker client — national ID → full profile payload.

GET {base}/api?token=...&modulo=cpf&consulta={id}
An empty body or {} means the broker has no record: NotFoundError.
The token is sent as a query parameter and must never be logged.
"""

from ..errors import ExternalServiceError, NotFoundError
from ..utils.normalization import digits_only
from .base import BaseConnector


class BrokerClient(BaseConnector):
    service = "broker"

    def __init__(self, http, base_url: str, token: str):
        super().__init__(http, base_url)
        self._token = token

    async def fetch(self, national_id: str) -> dict:
        doc = digits_only(national_id)
        modulo = "cnpj" if len(doc) == 14 else "cpf"
        resp = await self._request(
            "GET",
            "/api",
            params={"token": self._token, "modulo": modulo, "consulta": doc},
        )
        if not resp.content.strip():
            raise NotFoundError(f"Broker has no record for {doc}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise ExternalServiceError("broker returned invalid JSON", service=self.service) from e
        if not payload:
            raise NotFoundError(f"Broker has no record for {doc}")
        if not isinstance(payload, dict):
            raise ExternalServiceError("broker returned an unexpected payload", service=self.service)
        return payload
