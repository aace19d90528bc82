"""
Polling policy for long-running video operations.

Jobs take minutes, so the delay between polls is fixed rather than
exponential. The ceiling is explicit: ``max_attempts`` and/or
``max_elapsed_seconds``; both unset means wait for as long as the remote
service takes.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from .errors import PollingTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class PollPolicy:
    """How often to poll and when to give up."""
    interval_seconds: float = 10.0
    max_attempts: int = 0  # 0 = unbounded
    max_elapsed_seconds: Optional[float] = None
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep, repr=False)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    def __post_init__(self):
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be zero (unbounded) or positive")
        if self.interval_seconds is None or self.interval_seconds < 0:
            raise ValueError("interval_seconds must be zero or positive")
        if self.max_elapsed_seconds is not None and self.max_elapsed_seconds < 0:
            raise ValueError("max_elapsed_seconds must be zero or positive")

    @classmethod
    def from_config(cls, polling_config, **overrides) -> "PollPolicy":
        values = dict(
            interval_seconds=polling_config.interval_seconds,
            max_attempts=polling_config.max_attempts,
            max_elapsed_seconds=polling_config.max_elapsed_seconds,
        )
        values.update(overrides)
        return cls(**values)

    @property
    def bounded(self) -> bool:
        return bool(self.max_attempts) or self.max_elapsed_seconds is not None

    def delay_for(self, attempt: int) -> float:
        """Delay before poll number ``attempt`` (1-based)."""
        return self.interval_seconds

    def check(self, attempts: int, elapsed: float):
        """Raise PollingTimeoutError if another poll would exceed the ceiling."""
        if self.max_attempts and attempts >= self.max_attempts:
            raise PollingTimeoutError(
                f"Video generation did not finish after {attempts} status checks.",
                attempts=attempts,
                elapsed_seconds=elapsed,
            )
        if self.max_elapsed_seconds is not None and elapsed >= self.max_elapsed_seconds:
            raise PollingTimeoutError(
                f"Video generation did not finish within {self.max_elapsed_seconds:.0f} seconds.",
                attempts=attempts,
                elapsed_seconds=elapsed,
            )


async def poll_until_done(
    operation: Any,
    refresh: Callable[[Any], Awaitable[Any]],
    policy: PollPolicy,
    on_poll: Optional[Callable[[int, Any], None]] = None,
) -> Any:
    """
    Poll ``operation`` until its ``done`` flag is set.

    Errors raised by ``refresh`` are not retried; they propagate and end the
    loop.

    Args:
        operation: Operation returned by the submission call
        refresh: Coroutine returning the updated operation
        policy: Delay and ceiling
        on_poll: Called with (attempt, operation) after each poll

    Returns:
        The finished operation
    """
    started = policy.clock()
    attempts = 0

    while not getattr(operation, "done", False):
        policy.check(attempts, policy.clock() - started)

        await policy.sleep(policy.delay_for(attempts + 1))
        operation = await refresh(operation)
        attempts += 1

        logger.info(
            f"Poll {attempts}: operation {getattr(operation, 'name', '?')} "
            f"done={bool(getattr(operation, 'done', False))}"
        )
        if on_poll:
            on_poll(attempts, operation)

    return operation
