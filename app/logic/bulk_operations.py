"""
============================================================================
Project Exposure Desk v1.0.0
Bulk Operation Coordinator - Adaptive Debounce for Mass Edits
============================================================================

Reliability Level: L4 Supporting
Input Constraints: Operation ids (any hashable string), clock in ms
Side Effects: None beyond instance state

While any bulk operation (mass delete, import) is running, and for a
cooldown after the last one ends, report refreshes are debounced with
the long delay so the table is not recomputed once per row.

    normal:          500 ms
    bulk / cooldown: 8000 ms
    cooldown:        5000 ms after the last bulk operation ends

============================================================================
"""

import logging
import time
from typing import Callable, Optional, Set

# Configure module logger
logger = logging.getLogger(__name__)

BULK_OPERATION_COOLDOWN_MS = 5000
NORMAL_DEBOUNCE_MS = 500
BULK_DEBOUNCE_MS = 8000


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class BulkOperationCoordinator:
    """Tracks in-flight bulk operations for one owner."""

    def __init__(
        self,
        cooldown_ms: int = BULK_OPERATION_COOLDOWN_MS,
        normal_debounce_ms: int = NORMAL_DEBOUNCE_MS,
        bulk_debounce_ms: int = BULK_DEBOUNCE_MS,
        clock: Callable[[], float] = _monotonic_ms
    ):
        self.cooldown_ms = cooldown_ms
        self.normal_debounce_ms = normal_debounce_ms
        self.bulk_debounce_ms = bulk_debounce_ms
        self._clock = clock
        self._active: Set[str] = set()
        self._last_ended_at: Optional[float] = None

    def start_bulk_operation(self, operation_id: str) -> None:
        self._active.add(operation_id)
        logger.info("Bulk operation started | id=%s | active=%s", operation_id, len(self._active))

    def end_bulk_operation(self, operation_id: str) -> None:
        """Unknown ids are ignored. Cooldown starts when the last one ends."""
        if operation_id not in self._active:
            return
        self._active.discard(operation_id)
        if not self._active:
            self._last_ended_at = self._clock()
        logger.info("Bulk operation ended | id=%s | active=%s", operation_id, len(self._active))

    @property
    def is_bulk_mode(self) -> bool:
        return bool(self._active)

    @property
    def active_operations(self) -> Set[str]:
        return set(self._active)

    def is_in_cooldown(self) -> bool:
        if self._active or self._last_ended_at is None:
            return False
        return self._clock() - self._last_ended_at < self.cooldown_ms

    def get_adaptive_debounce_delay(self) -> int:
        if self.is_bulk_mode or self.is_in_cooldown():
            return self.bulk_debounce_ms
        return self.normal_debounce_ms


__all__ = [
    "BULK_OPERATION_COOLDOWN_MS",
    "NORMAL_DEBOUNCE_MS",
    "BULK_DEBOUNCE_MS",
    "BulkOperationCoordinator",
]
