"""
Per-principal, per-action sliding-window rate limiting.

Each window is one document holding the call timestamps of the trailing
hour. The check is a single atomic read-filter-append on the document store.
"""

import math
import time
from functools import lru_cache
from typing import Callable

import structlog

from advdesk.config import get_settings
from advdesk.errors import InvalidArgument, ResourceExhausted
from advdesk.storage.documents import Document, DocumentStore, get_document_store
from advdesk.storage.repositories import rate_limit_path

logger = structlog.get_logger(__name__)

WINDOW_SECONDS = 3600


class RateLimiter:
    """Sliding one-hour window over the document store."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        limits: dict[str, int] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store or get_document_store()
        self.limits = limits if limits is not None else get_settings().rate_limits
        self.clock = clock

    async def check(
        self,
        principal_id: str,
        action: str,
        max_per_hour: int | None = None,
    ) -> None:
        """
        Record one call, or raise ResourceExhausted if the window is full.

        A rejected call is not recorded.
        """
        limit = max_per_hour if max_per_hour is not None else self.limits.get(action)
        if limit is None:
            raise InvalidArgument(f"Ação sem limite configurado: {action}")

        now = self.clock()

        def apply(current: Document | None) -> Document:
            calls = [
                t for t in (current or {}).get("calls", [])
                if now - t < WINDOW_SECONDS
            ]
            if len(calls) >= limit:
                retry_after = max(1, math.ceil(min(calls) + WINDOW_SECONDS - now))
                raise ResourceExhausted(action, limit, retry_after)
            calls.append(now)
            return {"calls": calls}

        try:
            window = await self.store.transact(rate_limit_path(principal_id, action), apply)
        except ResourceExhausted as e:
            logger.warning(
                "rate_limit_exceeded",
                principal_id=principal_id,
                action=action,
                limit=limit,
                retry_after=e.retry_after,
            )
            raise

        logger.debug(
            "rate_limit_checked",
            principal_id=principal_id,
            action=action,
            used=len(window["calls"]),
            limit=limit,
        )


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    """Get rate limiter instance."""
    return RateLimiter()
