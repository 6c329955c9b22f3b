"""Primary/fallback dispatch guarded by a circuit breaker."""

import time
from enum import Enum
from typing import Any, Callable, Optional

from src.services.backend import PropertyBackend
from src.utils.errors import BackendUnavailableError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Tracks primary backend failures.

    Closed: requests go to the primary. After failure_threshold consecutive
    failures the circuit opens. Open: requests skip the primary until
    recovery_timeout seconds pass, then a single trial request is let
    through (half-open) while concurrent callers keep using the fallback.
    Its outcome closes or re-opens the circuit. With recovery_timeout=None
    an open circuit stays open.
    """

    def __init__(
        self,
        failure_threshold: int = 1,
        recovery_timeout: Optional[float] = 30.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at: Optional[float] = None
        self._trial_in_flight = False

    def _now(self) -> float:
        return self._clock() if self._clock else time.monotonic()

    @property
    def state(self) -> CircuitState:
        if (
            self._state == CircuitState.OPEN
            and self.recovery_timeout is not None
            and self._opened_at is not None
            and self._now() - self._opened_at >= self.recovery_timeout
        ):
            self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        """Admit a call to the primary. Half-open admits one call at a time."""
        state = self.state
        if state == CircuitState.CLOSED:
            return True
        if state == CircuitState.HALF_OPEN and not self._trial_in_flight:
            self._trial_in_flight = True
            return True
        return False

    def release(self) -> None:
        """End an admitted call whose outcome says nothing about availability."""
        self._trial_in_flight = False

    def record_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("Circuit closed", previous_state=self._state.value)
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = None
        self._trial_in_flight = False

    def record_failure(self) -> None:
        self._failures += 1
        if self._state == CircuitState.HALF_OPEN or self._failures >= self.failure_threshold:
            self.trip()

    def trip(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._now()
        self._trial_in_flight = False
        logger.warning(
            "Circuit opened",
            failures=self._failures,
            recovery_timeout=self.recovery_timeout,
        )


class FallbackDispatcher:
    """Route backend calls to the primary, or to the fallback while the circuit is open."""

    def __init__(
        self,
        primary: PropertyBackend,
        fallback: PropertyBackend,
        failure_threshold: int = 1,
        recovery_timeout: Optional[float] = 30.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.primary = primary
        self.fallback = fallback
        self.breaker = CircuitBreaker(failure_threshold, recovery_timeout, clock=clock)

    @property
    def backend_available(self) -> bool:
        """True while calls are being served by the primary."""
        return self.breaker.state != CircuitState.OPEN

    @property
    def active_backend(self) -> PropertyBackend:
        return self.primary if self.backend_available else self.fallback

    async def initialize(self) -> bool:
        """Check the primary once; a failed check opens the circuit."""
        try:
            healthy = await self.primary.health_check()
        except BackendUnavailableError as e:
            logger.warning("Primary backend health check raised", backend=self.primary.name, error=str(e))
            healthy = False

        if healthy:
            self.breaker.record_success()
            logger.info("Primary backend available", backend=self.primary.name)
        else:
            logger.warning(
                "Primary backend unavailable, using fallback",
                backend=self.primary.name,
                fallback=self.fallback.name,
            )
            self.breaker.trip()
        return healthy

    async def call(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        """
        Run a backend operation by name.

        Args:
            operation: PropertyBackend method name
            *args, **kwargs: Passed through to the method

        Returns:
            Result from the primary, or from the fallback when the primary
            is unavailable
        """
        if self.breaker.allow_request():
            try:
                result = await getattr(self.primary, operation)(*args, **kwargs)
            except BackendUnavailableError as e:
                self.breaker.record_failure()
                logger.warning(
                    "Primary backend failed, falling back",
                    operation=operation,
                    backend=self.primary.name,
                    fallback=self.fallback.name,
                    error=str(e),
                    circuit_state=self.breaker.state.value,
                )
            except Exception:
                self.breaker.release()
                raise
            else:
                self.breaker.record_success()
                return result

        return await getattr(self.fallback, operation)(*args, **kwargs)

    async def aclose(self) -> None:
        await self.primary.aclose()
        await self.fallback.aclose()
