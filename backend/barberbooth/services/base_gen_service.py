from __future__ import annotations
"""Base generation service: bounded retry with transient/permanent classification, and metrics."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from barberbooth.services.errors import GenerationFailedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TRANSIENT_MARKERS: tuple[str, ...] = ('"code":500', '"code": 500', "INTERNAL")


@dataclass
class GenResult(Generic[T]):
    """Standardized generation result."""
    data: T
    provider: str
    latency_ms: int
    attempts_used: int


@dataclass
class GenServiceConfig:
    """Configuration for a generation service."""
    max_attempts: int = 3
    retry_delay: float = 1.0
    backoff_factor: float = 2.0
    timeout: float | None = None
    transient_markers: tuple[str, ...] = field(default=DEFAULT_TRANSIENT_MARKERS)

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt following ``attempt`` (1-indexed)."""
        return self.retry_delay * (self.backoff_factor ** (attempt - 1))


class BaseGenService(ABC, Generic[T]):
    """Abstract base class for generation services.

    Provides:
    - Bounded retry with exponential backoff, for transient failures only
    - Optional per-attempt timeout
    - Usage metrics
    """

    service_name: str = "unknown"
    config: GenServiceConfig

    def __init__(self, config: GenServiceConfig | None = None):
        self.config = config or GenServiceConfig()
        self._total_calls = 0
        self._total_errors = 0
        self._total_latency_ms = 0

    def is_transient(self, error: BaseException) -> bool:
        """A failure is transient iff its message carries a server-error marker."""
        message = str(error)
        return any(marker in message for marker in self.config.transient_markers)

    async def execute(self, **kwargs: Any) -> GenResult[T]:
        """Unified execution entry point with retry and metrics."""
        self._total_calls += 1
        start = time.monotonic()
        max_attempts = max(self.config.max_attempts, 1)

        for attempt in range(1, max_attempts + 1):
            try:
                if self.config.timeout:
                    result = await asyncio.wait_for(
                        self._generate(**kwargs),
                        timeout=self.config.timeout,
                    )
                else:
                    result = await self._generate(**kwargs)
            except Exception as e:
                transient = self.is_transient(e)
                logger.warning(
                    "%s attempt %d/%d failed (%s): %s",
                    self.service_name, attempt, max_attempts,
                    "transient" if transient else "permanent", str(e) or type(e).__name__,
                )
                self._log_failure_context(**kwargs)

                if transient and attempt < max_attempts:
                    delay = self.config.delay_for(attempt)
                    logger.info("%s: retrying in %.1fs...", self.service_name, delay)
                    await asyncio.sleep(delay)
                    continue

                self._total_errors += 1
                wrapped = self._wrap_error(e, attempts=attempt, transient=transient)
                if wrapped is e:
                    raise
                raise wrapped from e

            latency = int((time.monotonic() - start) * 1000)
            self._total_latency_ms += latency
            return GenResult(
                data=result,
                provider=self.service_name,
                latency_ms=latency,
                attempts_used=attempt,
            )

        raise RuntimeError(f"{self.service_name}: retry loop exited without a result")

    @abstractmethod
    async def _generate(self, **kwargs: Any) -> T:
        """Subclass implements the single-shot generation call."""
        ...

    def _wrap_error(self, error: Exception, *, attempts: int, transient: bool) -> Exception:
        """Turn the terminal failure into the error raised to callers."""
        if isinstance(error, GenerationFailedError):
            error.attempts = attempts
            error.details["attempts"] = attempts
            return error
        return GenerationFailedError(
            f"{self.service_name} failed after {attempts} attempt(s). Details: {error}",
            attempts=attempts,
            transient=transient,
        )

    def _log_failure_context(self, **kwargs: Any) -> None:
        """Optional request-detail logging on failure: override in subclass."""

    def get_metrics(self) -> dict[str, Any]:
        """Return usage statistics for this service."""
        succeeded = self._total_calls - self._total_errors
        return {
            "service": self.service_name,
            "total_calls": self._total_calls,
            "total_errors": self._total_errors,
            "error_rate": round(self._total_errors / max(self._total_calls, 1), 3),
            "avg_latency_ms": (
                round(self._total_latency_ms / succeeded) if succeeded > 0 else 0
            ),
        }
