from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar


T = TypeVar("T")

log = logging.getLogger("kirobot.retry")


@dataclass
class RetryPolicy:
    """Bounded retry with a fixed (``backoff=1``) or growing delay between attempts.

    ``run`` returns the first result accepted by ``is_success`` or None once
    all attempts are used. Exceptions from the operation count as failed
    attempts; nothing is raised to the caller.
    """

    max_attempts: int = 3
    delay_s: float = 2.0
    backoff: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def delay_for(self, attempt: int) -> float:
        return self.delay_s * (self.backoff ** (attempt - 1))

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        is_success: Callable[[T], bool] = lambda r: r is not None,
        label: str = "operation",
    ) -> Optional[T]:
        for attempt in range(1, self.max_attempts + 1):
            log.info("%s attempt %d/%d", label, attempt, self.max_attempts)
            try:
                result = await operation()
                if is_success(result):
                    return result
                log.warning("%s responded but not successful", label)
            except Exception as e:  # noqa: BLE001
                log.warning("%s attempt %d failed: %s", label, attempt, e)

            if attempt < self.max_attempts:
                await self.sleep(self.delay_for(attempt))

        log.error("%s: all %d attempts failed", label, self.max_attempts)
        return None
