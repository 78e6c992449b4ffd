from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass

from fastapi import HTTPException, status


@dataclass
class WindowCounter:
    start: float
    count: int


_lock = asyncio.Lock()
_counters: dict[str, WindowCounter] = {}
_MAX_KEYS = 20_000


async def consume(*, key: str, limit: int, window_seconds: int = 60) -> None:
    """
    In-memory fixed-window limiter keyed by client IP or user id.

    Counters live in this process only; several API workers each keep their own.
    """
    if limit <= 0:
        return

    now = time.time()
    async with _lock:
        if len(_counters) > _MAX_KEYS:
            _counters.clear()

        c = _counters.get(key)
        if c is None or (now - c.start) >= window_seconds:
            _counters[key] = WindowCounter(start=now, count=1)
            return

        if c.count >= limit:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "message": "Too many requests.",
                    "hint": "Wait a minute before logging more study time.",
                    "code": "RATE_LIMITED",
                },
            )

        c.count += 1


def reset() -> None:
    _counters.clear()
