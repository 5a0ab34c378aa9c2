"""读后校验的重试策略."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from vibe_ops import config

logger = logging.getLogger(__name__)

Backoff = Callable[[int], float]


def fixed_backoff(delay: float) -> Backoff:
    return lambda attempt: delay


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    backoff: Backoff = field(default_factory=lambda: fixed_backoff(0.05))
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def __post_init__(self) -> None:
        if self.max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        return cls(
            max_attempts=config.VERIFY_MAX_ATTEMPTS,
            backoff=fixed_backoff(config.VERIFY_RETRY_DELAY_SECONDS),
        )

    @classmethod
    def no_delay(cls, max_attempts: int = 2) -> "RetryPolicy":
        """测试用：不等待."""
        return cls(max_attempts=max_attempts, backoff=fixed_backoff(0.0))

    async def run(self, attempt: Callable[[], Awaitable[bool]], *, label: str = "") -> bool:
        """执行 attempt 直到返回 True 或次数耗尽."""
        for number in range(1, self.max_attempts + 1):
            if await attempt():
                return True
            if number < self.max_attempts:
                delay = self.backoff(number)
                logger.warning(
                    "Attempt %s/%s failed for %s, retrying in %.3fs",
                    number,
                    self.max_attempts,
                    label or "operation",
                    delay,
                )
                if delay > 0:
                    await self.sleep(delay)
        return False
