"""Bookkeeping triggered by request resolution and authorization."""

import logging
from typing import Optional, Tuple

from fastapi.concurrency import run_in_threadpool

from disclosure import storage
from disclosure.models import PendingDisclosureRequest
from disclosure.pending import PendingRequests
from disclosure.profiles import ProfileRegistry

log = logging.getLogger(__name__)

PERSONA_WORKING = "persona:working"
PERSONA_ERROR = "persona:error"


class SideEffects:
    def __init__(self, Session, redis, pending: PendingRequests, profiles: ProfileRegistry):
        self.Session = Session
        self.redis = redis
        self.pending = pending
        self.profiles = profiles

    async def update_interaction_stats(self, subject: str, counterpart: str, kind: str):
        await run_in_threadpool(storage.bump_interaction_stat, self.Session, subject, counterpart, kind)

    async def store_connection(self, subject: str, connection_type: str, counterpart: str):
        await run_in_threadpool(storage.save_connection, self.Session, subject, connection_type, counterpart)

    async def update_activity(self, activity_id: Optional[str], **fields):
        if activity_id is None:
            return
        await run_in_threadpool(storage.update_activity, self.Session, activity_id, fields)

    async def store_request(self, request: PendingDisclosureRequest):
        await run_in_threadpool(self.pending.save, request)
        await run_in_threadpool(
            storage.update_activity,
            self.Session,
            request.id,
            {"client_id": request.client_id, "request": request.as_record()},
        )

    async def clear_request(self, request_id: Optional[str]):
        if request_id is None:
            return
        await run_in_threadpool(self.pending.pop, request_id)

    async def refresh_external_profile(self, client_id: str):
        await self.profiles.refresh(client_id)

    def _publication_status(self) -> Tuple[bool, Optional[str]]:
        return bool(self.redis.get(PERSONA_WORKING)), self.redis.get(PERSONA_ERROR)

    async def publication_status(self) -> Tuple[bool, Optional[str]]:
        return await run_in_threadpool(self._publication_status)

    def _save_public_identity(self, address: str):
        self.redis.set(PERSONA_WORKING, "1")
        try:
            storage.mark_published(self.Session, address)
            log.info("published identity document for %s", address)
        except Exception as exc:
            self.redis.set(PERSONA_ERROR, str(exc))
            raise
        finally:
            self.redis.delete(PERSONA_WORKING)

    async def save_public_identity(self, address: str):
        await run_in_threadpool(self._save_public_identity, address)
