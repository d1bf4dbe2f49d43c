"""Bounded retry of fallible async operations, with compensation between attempts."""

import asyncio
import inspect
import logging
from dataclasses import dataclass

from mothership_setup.errors import MalformedOutputError, RetryExhaustedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


@dataclass(frozen=True)
class RetryPolicy:
    """Re-invoke an async action up to ``max_attempts`` times.

    Attempts are sequential. After a failed attempt that is not the last one,
    ``on_failure(error)`` runs (and is awaited if it returns an awaitable)
    before the next attempt starts. It never runs after the final failure.

    Compensation errors are logged and dropped while
    ``suppress_compensation_errors`` is set; otherwise they propagate and end
    the retry sequence. Errors listed in ``fatal_errors`` are re-raised on the
    spot, without compensation.

    Attempts follow each other immediately unless ``delay`` (seconds) is set.
    The policy keeps no state between ``execute`` calls.
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delay: float = 0
    suppress_compensation_errors: bool = True
    fatal_errors: tuple[type[Exception], ...] = (MalformedOutputError,)

    async def execute(self, action, on_failure=None, max_attempts=None):
        """Run *action* until it succeeds or the attempts run out.

        Args:
            action: zero-argument callable returning an awaitable
            on_failure: optional callable(error), sync or async
            max_attempts: overrides the policy default for this call

        Returns:
            The value of the first successful attempt.

        Raises:
            RetryExhaustedError: every attempt failed.
        """
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

        for attempt in range(1, max_attempts + 1):
            try:
                return await action()
            except self.fatal_errors:
                raise
            except Exception as e:
                if attempt >= max_attempts:
                    raise RetryExhaustedError(attempt, e) from e
                logger.warning(f"Attempt {attempt}/{max_attempts} failed: {e}")
                if on_failure is not None:
                    await self._compensate(on_failure, e)
                if self.delay:
                    await asyncio.sleep(self.delay)

    async def _compensate(self, on_failure, error):
        try:
            result = on_failure(error)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            if not self.suppress_compensation_errors:
                raise
            logger.warning(f"Cleanup before retry failed (ignored): {e}")
