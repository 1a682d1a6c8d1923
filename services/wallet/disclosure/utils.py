import asyncio
import logging
import time
from typing import Coroutine, Set

log = logging.getLogger(__name__)

DAY = 24 * 60 * 60
WEEK = 7 * DAY

# iat values above this were encoded in milliseconds by legacy clients
LEGACY_MS_THRESHOLD = 1_000_000_000_000

_background: Set[asyncio.Task] = set()


def now_ts():
    return int(time.time())


def now_ms():
    return int(time.time() * 1000)


def is_legacy_ms(iat) -> bool:
    return iat is not None and iat > LEGACY_MS_THRESHOLD


def spawn(coro: Coroutine, name: str) -> asyncio.Task:
    """Run ``coro`` detached from the caller.

    The task is kept referenced until it finishes. Failures are logged and
    otherwise discarded.
    """
    task = asyncio.create_task(coro, name=name)
    _background.add(task)
    task.add_done_callback(_reap)
    return task


def _reap(task: asyncio.Task):
    _background.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error("background task %s failed", task.get_name(), exc_info=exc)
