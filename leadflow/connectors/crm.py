"""CRM client — posts the enrichment summary back onto the lead.

POST {base}/integration/leads/{lead_id}/create_message
Bearer token, JSON {"lead_id": ..., "body": ...}; the CRM answers 201.
"""

from urllib.parse import quote

from .base import BaseConnector


class CrmClient(BaseConnector):
    service = "crm"

    def __init__(self, http, base_url: str, token: str):
        super().__init__(http, base_url)
        self._token = token

    async def send_message(self, lead_id: str, text: str) -> None:
        await self._request(
            "POST",
            f"/integration/leads/{quote(lead_id, safe='')}/create_message",
            expected=(200, 201),
            json={"lead_id": lead_id, "body": text},
            headers={"Authorization": f"Bearer {self._token}"},
        )
