"""Enrichment client — broker profile fetch behind the integrity-checked cache.

Usage:
    client = EnrichmentClient(broker, response_cache)
    payload = await client.fetch_profile(cpf)
"""

from loguru import logger

from ..cache.response_cache import ResponseCache


class EnrichmentClient:
    def __init__(self, broker, cache: ResponseCache):
        self.broker = broker
        self.cache = cache

    async def fetch_profile(self, national_id: str) -> dict:
        key = ("broker_profile", national_id)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Broker cache hit for {}", national_id)
            return cached
        payload = await self.broker.fetch(national_id)
        self.cache.set(key, payload)
        return payload
