import logging
from typing import Optional

import httpx
from fastapi.concurrency import run_in_threadpool

from disclosure import storage

log = logging.getLogger(__name__)


class ProfileRegistry:
    """Cached public profiles of requesting clients."""

    def __init__(self, Session, resolver_url: str = "", timeout: float = 10.0):
        self.Session = Session
        self.resolver_url = resolver_url.rstrip("/")
        self.timeout = timeout

    async def external_profile(self, client_id: str) -> Optional[dict]:
        return await run_in_threadpool(storage.get_profile, self.Session, client_id)

    async def display_name(self, client_id: str) -> str:
        profile = await self.external_profile(client_id)
        if profile and profile.get("name"):
            return profile["name"]
        return client_id

    def save(self, client_id: str, name: Optional[str], profile: Optional[dict] = None):
        storage.save_profile(self.Session, client_id, name, profile or {})

    async def refresh(self, client_id: str):
        if not self.resolver_url:
            log.debug("no profile resolver configured, keeping cached profile for %s", client_id)
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(f"{self.resolver_url}/{client_id}")
            resp.raise_for_status()
            profile = resp.json()
        cached = await self.external_profile(client_id) or {}
        name = profile.get("name") or cached.get("name")
        await run_in_threadpool(storage.save_profile, self.Session, client_id, name, profile)
        log.info("refreshed profile for %s", client_id)
