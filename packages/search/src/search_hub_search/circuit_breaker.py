"""Circuit breaker guarding the embedding/rerank provider.

States:
    CLOSED     calls pass; consecutive failures are counted
    OPEN       calls are rejected until both reset_timeout_ms and
               half_open_timeout_ms have passed since the opening failure
    HALF_OPEN  a single trial call is let through; its outcome closes or
               re-opens the breaker

Usage:
    breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=5))

    if breaker.try_acquire():
        try:
            result = await call_provider()
        except ProviderError:
            breaker.record_failure()
            raise
        breaker.record_success()

A caller that acquired permission but never reached the provider must call
release(), otherwise a trial call stays claimed and the breaker cannot
recover.

The breaker is plain in-process state. Create one per service instance
and pass it to whatever needs it.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from search_hub_common import Settings, get_logger, get_settings

from search_hub_search.metrics import set_breaker_state

logger = get_logger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


_GAUGE_VALUES = {
    CircuitState.CLOSED: 0,
    CircuitState.HALF_OPEN: 1,
    CircuitState.OPEN: 2,
}


@dataclass
class CircuitBreakerConfig:
    """Breaker thresholds.

    Attributes:
        failure_threshold: Consecutive failures that open the breaker
        reset_timeout_ms: Minimum time the breaker stays open
        half_open_timeout_ms: Wait after opening before the single trial
            call is let through (the later of the two timeouts wins)
    """

    failure_threshold: int = 5
    reset_timeout_ms: int = 30_000
    half_open_timeout_ms: int = 10_000

    def __post_init__(self):
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.reset_timeout_ms < 0 or self.half_open_timeout_ms < 0:
            raise ValueError("timeouts must be non-negative")

    @property
    def recovery_delay_ms(self) -> int:
        return max(self.reset_timeout_ms, self.half_open_timeout_ms)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CircuitBreakerConfig":
        settings = settings or get_settings()
        return cls(
            failure_threshold=settings.breaker_failure_threshold,
            reset_timeout_ms=settings.breaker_reset_timeout_ms,
            half_open_timeout_ms=settings.breaker_half_open_timeout_ms,
        )


class CircuitBreaker:
    """Thread-safe failure isolation state machine.

    Args:
        config: Thresholds (default: CircuitBreakerConfig())
        name: Label used in logs and the state gauge
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        config: Optional[CircuitBreakerConfig] = None,
        *,
        name: str = "provider",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CircuitBreakerConfig()
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None
        self._trial_in_flight = False

        set_breaker_state(self.name, _GAUGE_VALUES[self._state])

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        """Consecutive failures since the last success or opening."""
        return self._failure_count

    @property
    def last_failure_time(self) -> Optional[float]:
        """Clock time of the failure that last opened the breaker."""
        return self._last_failure_time

    def stats(self) -> dict[str, Any]:
        """Snapshot for logging and the CLI."""
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "last_failure_time": self._last_failure_time,
                "trial_in_flight": self._trial_in_flight,
                "failure_threshold": self.config.failure_threshold,
                "reset_timeout_ms": self.config.reset_timeout_ms,
                "half_open_timeout_ms": self.config.half_open_timeout_ms,
            }

    # -------------------------------------------------------------------------
    # Gate
    # -------------------------------------------------------------------------

    def can_execute(self) -> bool:
        """Whether a call would currently be allowed. Does not change state."""
        with self._lock:
            if self._state is CircuitState.CLOSED:
                return True
            if self._state is CircuitState.OPEN:
                return self._recovery_due(self._clock())
            return not self._trial_in_flight

    def try_acquire(self) -> bool:
        """Claim permission for one call.

        In OPEN state past the recovery delay this moves the breaker to
        HALF_OPEN and claims the single trial call. Callers that get True
        must report back with record_success(), record_failure() or
        release().
        """
        with self._lock:
            if self._state is CircuitState.CLOSED:
                return True

            if self._state is CircuitState.OPEN:
                if not self._recovery_due(self._clock()):
                    return False
                self._transition(CircuitState.HALF_OPEN)

            if self._trial_in_flight:
                return False

            self._trial_in_flight = True
            logger.info("circuit_breaker_trial_started", breaker=self.name)
            return True

    def release(self) -> None:
        """Give back a permission that never reached the provider.

        Frees the trial call in HALF_OPEN so the next caller can try.
        No effect in other states.
        """
        with self._lock:
            if self._state is CircuitState.HALF_OPEN and self._trial_in_flight:
                self._trial_in_flight = False
                logger.info("circuit_breaker_trial_released", breaker=self.name)

    # -------------------------------------------------------------------------
    # Outcomes
    # -------------------------------------------------------------------------

    def record_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            self._trial_in_flight = False
            if self._state is not CircuitState.CLOSED:
                self._transition(CircuitState.CLOSED)

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1

            if (
                self._state is CircuitState.HALF_OPEN
                or self._failure_count >= self.config.failure_threshold
            ):
                self._last_failure_time = self._clock()
                self._trial_in_flight = False
                if self._state is not CircuitState.OPEN:
                    self._transition(CircuitState.OPEN)
                self._failure_count = 0
            else:
                logger.debug(
                    "circuit_breaker_failure_recorded",
                    breaker=self.name,
                    failure_count=self._failure_count,
                    threshold=self.config.failure_threshold,
                )

    def reset(self) -> None:
        """Force the breaker back to CLOSED with no recorded failures."""
        with self._lock:
            self._failure_count = 0
            self._last_failure_time = None
            self._trial_in_flight = False
            if self._state is not CircuitState.CLOSED:
                self._transition(CircuitState.CLOSED)

    # -------------------------------------------------------------------------
    # Internals (lock held)
    # -------------------------------------------------------------------------

    def _recovery_due(self, now: float) -> bool:
        if self._last_failure_time is None:
            return True
        return (now - self._last_failure_time) * 1000 >= self.config.recovery_delay_ms

    def _transition(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        set_breaker_state(self.name, _GAUGE_VALUES[new_state])

        if new_state is CircuitState.OPEN:
            logger.warning(
                "circuit_breaker_opened",
                breaker=self.name,
                previous_state=old_state.value,
                failure_count=self._failure_count,
                recovery_delay_ms=self.config.recovery_delay_ms,
            )
        elif new_state is CircuitState.HALF_OPEN:
            logger.info("circuit_breaker_half_open", breaker=self.name)
        else:
            logger.info(
                "circuit_breaker_closed",
                breaker=self.name,
                previous_state=old_state.value,
            )
