from typing import Optional

from fastapi.concurrency import run_in_threadpool

from disclosure import storage

ENDPOINT_ARN = "endpoint_arn"
NOTIFICATIONS_ALLOWED = "notifications_allowed"


class Notifications:
    """Push registration state of this device."""

    def __init__(self, Session):
        self.Session = Session

    async def notifications_allowed(self) -> bool:
        return await run_in_threadpool(storage.get_state, self.Session, NOTIFICATIONS_ALLOWED) == "1"

    async def endpoint_arn(self) -> Optional[str]:
        return await run_in_threadpool(storage.get_state, self.Session, ENDPOINT_ARN)

    def register(self, endpoint_arn: Optional[str], allowed: bool):
        storage.set_state(self.Session, ENDPOINT_ARN, endpoint_arn)
        storage.set_state(self.Session, NOTIFICATIONS_ALLOWED, "1" if allowed else "0")
