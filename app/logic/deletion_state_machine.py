"""
============================================================================
Project Exposure Desk v1.0.0
Deletion State Machine - Confirm / Delete / Report Flow
============================================================================

Reliability Level: L4 Supporting
Input Constraints: DeletionEvent values
Side Effects: None in transition(); run_deletion() calls the supplied delete function

DELETION LIFECYCLE:
    IDLE       --OPEN_CONFIRMATION--> CONFIRMING
    CONFIRMING --CONFIRM_DELETE-----> DELETING   (progress 0)
    CONFIRMING --CANCEL | RESET-----> IDLE       (context cleared)
    DELETING   --SET_PROGRESS-------> DELETING
    DELETING   --SET_SUCCESS--------> SUCCEEDED  (progress 100)
    DELETING   --SET_ERROR----------> FAILED
    SUCCEEDED  --RESET--------------> IDLE
    FAILED     --RESET--------------> IDLE
    SUCCEEDED | FAILED --OPEN_CONFIRMATION--> CONFIRMING

    Any other event leaves the context unchanged.

transition() is pure. The caller performs the actual deletion after
observing DELETING and reports back with SET_SUCCESS or SET_ERROR.

ERROR CODES:
    - DEL-001: Event ignored in current state

============================================================================
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional

# Configure module logger
logger = logging.getLogger(__name__)


class DeletionErrorCode:
    IGNORED_EVENT = "DEL-001"


class DeletionState(Enum):
    IDLE = "IDLE"
    CONFIRMING = "CONFIRMING"
    DELETING = "DELETING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class DeletionEventType(Enum):
    OPEN_CONFIRMATION = "OPEN_CONFIRMATION"
    CONFIRM_DELETE = "CONFIRM_DELETE"
    CANCEL = "CANCEL"
    SET_PROGRESS = "SET_PROGRESS"
    SET_SUCCESS = "SET_SUCCESS"
    SET_ERROR = "SET_ERROR"
    RESET = "RESET"


class ItemType(Enum):
    TRADE = "trade"
    LEG = "leg"


# Events each state reacts to
HANDLED_EVENTS: Dict[DeletionState, FrozenSet[DeletionEventType]] = {
    DeletionState.IDLE: frozenset({DeletionEventType.OPEN_CONFIRMATION}),
    DeletionState.CONFIRMING: frozenset({
        DeletionEventType.CONFIRM_DELETE,
        DeletionEventType.CANCEL,
        DeletionEventType.RESET,
    }),
    DeletionState.DELETING: frozenset({
        DeletionEventType.SET_PROGRESS,
        DeletionEventType.SET_SUCCESS,
        DeletionEventType.SET_ERROR,
    }),
    DeletionState.SUCCEEDED: frozenset({
        DeletionEventType.RESET,
        DeletionEventType.OPEN_CONFIRMATION,
    }),
    DeletionState.FAILED: frozenset({
        DeletionEventType.RESET,
        DeletionEventType.OPEN_CONFIRMATION,
    }),
}


@dataclass(frozen=True)
class DeletionEvent:
    type: DeletionEventType
    item_type: Optional[ItemType] = None
    item_id: Optional[str] = None
    item_reference: Optional[str] = None
    parent_id: Optional[str] = None
    progress: Optional[float] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class DeletionContext:
    state: DeletionState = DeletionState.IDLE
    item_type: Optional[ItemType] = None
    item_id: Optional[str] = None
    item_reference: Optional[str] = None
    parent_id: Optional[str] = None
    progress: float = 0.0
    error: Optional[str] = None

    @property
    def is_processing(self) -> bool:
        return self.state == DeletionState.DELETING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "itemType": self.item_type.value if self.item_type else None,
            "itemId": self.item_id,
            "itemReference": self.item_reference,
            "parentId": self.parent_id,
            "progress": self.progress,
            "error": self.error,
            "isProcessing": self.is_processing,
        }


INITIAL_CONTEXT = DeletionContext()


def _open(event: DeletionEvent) -> DeletionContext:
    return DeletionContext(
        state=DeletionState.CONFIRMING,
        item_type=event.item_type,
        item_id=event.item_id,
        item_reference=event.item_reference,
        parent_id=event.parent_id,
    )


def transition(context: DeletionContext, event: DeletionEvent) -> DeletionContext:
    """
    Pure transition function.

    Returns:
        The next context, or context itself when the event is not handled
    """
    if event.type not in HANDLED_EVENTS[context.state]:
        logger.debug(
            f"[{DeletionErrorCode.IGNORED_EVENT}] Event ignored | "
            f"state={context.state.value} event={event.type.value}"
        )
        return context

    if event.type == DeletionEventType.OPEN_CONFIRMATION:
        return _open(event)
    if event.type in (DeletionEventType.CANCEL, DeletionEventType.RESET):
        return INITIAL_CONTEXT
    if event.type == DeletionEventType.CONFIRM_DELETE:
        return replace(context, state=DeletionState.DELETING, progress=0.0, error=None)
    if event.type == DeletionEventType.SET_PROGRESS:
        progress = context.progress if event.progress is None else float(event.progress)
        return replace(context, progress=max(0.0, min(100.0, progress)))
    if event.type == DeletionEventType.SET_SUCCESS:
        return replace(context, state=DeletionState.SUCCEEDED, progress=100.0)
    if event.type == DeletionEventType.SET_ERROR:
        return replace(context, state=DeletionState.FAILED, error=event.error or "Deletion failed")
    return context


class DeletionStateMachine:
    """Holds one deletion flow's context and applies events to it."""

    def __init__(self, context: DeletionContext = INITIAL_CONTEXT):
        self._context = context

    @property
    def context(self) -> DeletionContext:
        return self._context

    @property
    def state(self) -> DeletionState:
        return self._context.state

    def send(self, event: DeletionEvent) -> DeletionContext:
        previous = self._context.state
        self._context = transition(self._context, event)
        if self._context.state != previous:
            logger.info(
                "Deletion state changed | %s -> %s | item=%s",
                previous.value, self._context.state.value, self._context.item_reference
            )
        return self._context

    def open_confirmation(
        self,
        item_type: ItemType,
        item_id: str,
        item_reference: Optional[str] = None,
        parent_id: Optional[str] = None
    ) -> DeletionContext:
        return self.send(DeletionEvent(
            DeletionEventType.OPEN_CONFIRMATION,
            item_type=item_type,
            item_id=item_id,
            item_reference=item_reference,
            parent_id=parent_id,
        ))

    def confirm(self) -> DeletionContext:
        return self.send(DeletionEvent(DeletionEventType.CONFIRM_DELETE))

    def cancel(self) -> DeletionContext:
        return self.send(DeletionEvent(DeletionEventType.CANCEL))

    def set_progress(self, progress: float) -> DeletionContext:
        return self.send(DeletionEvent(DeletionEventType.SET_PROGRESS, progress=progress))

    def succeed(self) -> DeletionContext:
        return self.send(DeletionEvent(DeletionEventType.SET_SUCCESS))

    def fail(self, error: str) -> DeletionContext:
        return self.send(DeletionEvent(DeletionEventType.SET_ERROR, error=error))

    def reset(self) -> DeletionContext:
        return self.send(DeletionEvent(DeletionEventType.RESET))


def run_deletion(
    machine: DeletionStateMachine,
    delete_fn: Callable[[DeletionContext, Callable[[float], None]], None]
) -> DeletionContext:
    """
    Confirm and execute the pending deletion.

    delete_fn receives the context and a progress callback. Any exception
    it raises moves the machine to FAILED with the exception message.
    """
    context = machine.confirm()
    if context.state != DeletionState.DELETING:
        return context
    try:
        delete_fn(context, machine.set_progress)
    except Exception as e:
        logger.error(
            "Deletion failed | item=%s | error=%s",
            context.item_reference, str(e)
        )
        return machine.fail(str(e))
    return machine.succeed()


__all__ = [
    "DeletionErrorCode",
    "DeletionState",
    "DeletionEventType",
    "ItemType",
    "HANDLED_EVENTS",
    "DeletionEvent",
    "DeletionContext",
    "INITIAL_CONTEXT",
    "transition",
    "DeletionStateMachine",
    "run_deletion",
]
