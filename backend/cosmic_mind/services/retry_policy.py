"""
Fixed-delay retry policy for outbound notification delivery
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Tuple

from cosmic_mind.services.notification_channel import DeliveryResult

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    delay_seconds: float = 5.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")

    def delays(self) -> Iterator[float]:
        """Wait before each attempt after the first"""
        for _ in range(self.max_attempts - 1):
            yield self.delay_seconds

    async def run(
        self,
        attempt: Callable[[], Awaitable[DeliveryResult]],
        sleep: Sleep = asyncio.sleep,
    ) -> Tuple[DeliveryResult, int]:
        """Call ``attempt`` until it succeeds or attempts run out.

        Returns the last result and how many attempts were made.
        """
        result = await attempt()
        attempts = 1
        for delay in self.delays():
            if result.ok:
                break
            logger.info(f"Delivery failed ({result.error}), retrying in {delay}s")
            await sleep(delay)
            result = await attempt()
            attempts += 1
        return result, attempts
