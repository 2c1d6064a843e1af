"""Identity directory client — phone/email → national ID (CPF).

GET {base}/Consultas/Pessoa/Telefone/{national number}
GET {base}/Consultas/Pessoa/Email/{email}
Basic auth. The response is a list of {nome, cpf}; the first cpf wins.
A 404 or an empty list means "no match" and returns None.
"""

from urllib.parse import quote

import httpx
from loguru import logger

from ..errors import ExternalServiceError
from ..utils.normalization import digits_only
from .base import BaseConnector


def _national_number(e164: str) -> str:
    digits = digits_only(e164)
    return digits[2:] if digits.startswith("55") else digits


class DirectoryClient(BaseConnector):
    service = "directory"

    def __init__(self, http: httpx.AsyncClient, base_url: str, user: str, password: str):
        super().__init__(http, base_url)
        self._auth = httpx.BasicAuth(user, password)

    async def lookup_by_phone(self, e164: str) -> str | None:
        return await self._lookup(f"/Consultas/Pessoa/Telefone/{_national_number(e164)}")

    async def lookup_by_email(self, email: str) -> str | None:
        return await self._lookup(f"/Consultas/Pessoa/Email/{quote(email, safe='@')}")

    async def _lookup(self, path: str) -> str | None:
        resp = await self._request("GET", path, expected=(200, 404), auth=self._auth)
        if resp.status_code == 404:
            return None
        try:
            matches = resp.json()
        except ValueError as e:
            raise ExternalServiceError("directory returned invalid JSON", service=self.service) from e
        if isinstance(matches, dict):
            matches = [matches]
        for match in matches or []:
            cpf = digits_only((match or {}).get("cpf"))
            if cpf:
                return cpf
        logger.debug("Directory match carried no cpf")
        return None
