"""Identity resolution — canonical phone/email → national ID(s).

Usage:
    resolution = await resolve_identity(contacts, directory)
    for national_id, channel in resolution.targets():
        ...

Business Rules:
- Phone and email lookups run concurrently; only present contacts are looked up
- A lookup that errors counts as "no result" for that channel only
- Neither resolves → NotFoundError
- Both resolve to the same ID → same_person, enriched once
- Both resolve to different IDs → two identities, phone first; never merged
  and never silently dropped

Called by: services/pipeline.py
Depends on: connectors/directory.py
"""

import asyncio
from dataclasses import dataclass, field

from loguru import logger

from ..errors import NotFoundError
from ..utils.contact_validation import ContactInput


@dataclass
class IdentityResolution:
    by_phone: str | None = None
    by_email: str | None = None
    same_person: bool = False
    resolved_ids: list[str] = field(default_factory=list)

    @property
    def different_people(self) -> bool:
        return len(self.resolved_ids) > 1

    def channel_for(self, national_id: str) -> str:
        if self.same_person:
            return "both"
        if national_id == self.by_phone:
            return "phone"
        return "email"

    def targets(self) -> list[tuple[str, str]]:
        return [(nid, self.channel_for(nid)) for nid in self.resolved_ids]


async def _safe_lookup(coro, channel: str) -> str | None:
    try:
        return await coro
    except Exception as e:
        logger.warning("Directory lookup by {} failed: {}", channel, e)
        return None


async def _none() -> None:
    return None


async def resolve_identity(contacts: ContactInput, directory) -> IdentityResolution:
    phone_lookup = _safe_lookup(directory.lookup_by_phone(contacts.phone), "phone") if contacts.phone else _none()
    email_lookup = _safe_lookup(directory.lookup_by_email(contacts.email), "email") if contacts.email else _none()
    by_phone, by_email = await asyncio.gather(phone_lookup, email_lookup)

    if not by_phone and not by_email:
        raise NotFoundError("No national identity found for the lead's phone or email")

    if by_phone and by_email:
        if by_phone == by_email:
            logger.info("Phone and email resolve to the same person")
            return IdentityResolution(by_phone, by_email, same_person=True, resolved_ids=[by_phone])
        logger.warning("Phone and email resolve to DIFFERENT people — enriching both separately")
        return IdentityResolution(by_phone, by_email, same_person=False, resolved_ids=[by_phone, by_email])

    only = by_phone or by_email
    return IdentityResolution(by_phone or None, by_email or None, same_person=False, resolved_ids=[only])
