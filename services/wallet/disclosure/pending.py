import json
from typing import Optional

from disclosure.models import PendingDisclosureRequest


class PendingRequests:
    """Requests awaiting a user decision, keyed by activity id."""

    def __init__(self, redis, ttl_seconds: int):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    def save(self, request: PendingDisclosureRequest):
        self.redis.setex(f"pending:{request.id}", self.ttl_seconds, json.dumps(request.as_record()))

    def get(self, request_id: str) -> Optional[PendingDisclosureRequest]:
        cached = self.redis.get(f"pending:{request_id}")
        if not cached:
            return None
        return PendingDisclosureRequest.model_validate(json.loads(cached))

    def pop(self, request_id: str) -> Optional[PendingDisclosureRequest]:
        request = self.get(request_id)
        self.redis.delete(f"pending:{request_id}")
        return request
