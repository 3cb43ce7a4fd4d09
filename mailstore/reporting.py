"""Structured reporting of recoverable failures."""

import logging
from collections import deque
from dataclasses import dataclass

logger = logging.getLogger("mailstore")


@dataclass(frozen=True)
class Failure:
    """A failure that was handled instead of crashing the caller."""
    operation: str
    target: str
    cause: BaseException


class FailureReporter:
    """Sink for recoverable failures.

    Each failure is logged at ERROR and kept in a bounded history so callers
    (and tests) can inspect what went wrong after a fail-soft operation.
    """

    MAX_HISTORY = 100

    def __init__(self, log: logging.Logger | None = None):
        self._logger = log or logger
        self.failures: deque[Failure] = deque(maxlen=self.MAX_HISTORY)

    def report(self, operation: str, target: str, cause: BaseException) -> Failure:
        failure = Failure(operation=operation, target=target, cause=cause)
        self.failures.append(failure)
        self._logger.error(f"{operation} failed for {target}: {cause}")
        return failure

    def warn(self, operation: str, target: str, reason: str) -> None:
        """Log a skipped step that is not a failure of the provider."""
        self._logger.warning(f"{operation} skipped for {target}: {reason}")

    def clear(self) -> None:
        self.failures.clear()
