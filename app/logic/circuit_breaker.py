"""
============================================================================
Project Exposure Desk v1.0.0
Circuit Breaker - Event-Window Storm Protection
============================================================================

Reliability Level: L4 Supporting
Input Constraints: Clock in milliseconds (injectable)
Side Effects: None beyond instance state

PURPOSE
-------
Protects report recalculation from change-notification storms. Events
are counted in a sliding window; once more than max_events arrive
inside window_ms the circuit opens and every further event is refused
until recovery_ms has elapsed since it opened.

    closed --(count > max_events)--> open --(recovery_ms elapsed)--> closed

Each owner holds its own breaker instance; there is no shared state.

ERROR CODES:
    - CB-001: Circuit opened

============================================================================
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional, Union

# Configure module logger
logger = logging.getLogger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class CircuitBreakerConfig:
    max_events_per_window: int = 15
    window_ms: int = 5000
    recovery_ms: int = 10000


class EventWindowCircuitBreaker:
    """
    Sliding-window event counter with timed recovery.

    Args:
        config: Thresholds (defaults 15 events / 5000 ms / 10000 ms)
        clock: Callable returning the current time in milliseconds
    """

    def __init__(
        self,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = _monotonic_ms
    ):
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._events: Deque[float] = deque()
        self._open = False
        self._opened_at: Optional[float] = None

    def _prune(self, now: float) -> None:
        cutoff = now - self.config.window_ms
        while self._events and self._events[0] <= cutoff:
            self._events.popleft()

    def record_event(self) -> bool:
        """
        Register one event.

        Returns:
            True when the event may be processed, False while the circuit is open
        """
        now = self._clock()
        self._prune(now)

        if self._open:
            if self._opened_at is not None and now - self._opened_at >= self.config.recovery_ms:
                logger.info("Circuit breaker recovered | open_for_ms=%s", now - self._opened_at)
                self._open = False
                self._opened_at = None
                self._events.clear()
            else:
                return False

        self._events.append(now)
        if len(self._events) > self.config.max_events_per_window:
            self._open = True
            self._opened_at = now
            logger.warning(
                "[CB-001] Circuit opened | events=%s | window_ms=%s",
                len(self._events), self.config.window_ms
            )
            return False
        return True

    def is_circuit_open(self) -> bool:
        return self._open

    def reset(self) -> None:
        self._events.clear()
        self._open = False
        self._opened_at = None

    def to_dict(self) -> Dict[str, Union[bool, int, Optional[float]]]:
        return {
            "isOpen": self._open,
            "eventsInWindow": len(self._events),
            "openedAt": self._opened_at,
        }


__all__ = [
    "CircuitBreakerConfig",
    "EventWindowCircuitBreaker",
]
