"""Notifications emitted by the affix engine.

Every mutating engine call returns the list of events it produced instead of
firing signals directly. The surrounding turn loop forwards them to whatever
observers care (UI, animation, combat log) with :func:`publish_events`.

USE FOR:
- Die value changes that a UI or a reactive affix wants to chain from
- Set bonus activation changes
- Status effect ticks and expiry
- Requests the engine can't fulfil itself (duplicating a die, granting a
  status to a combatant)

DO NOT USE FOR:
- Passing values back into the engine; return values do that
- Error handling or exception propagation

Handlers run synchronously and are fire-and-forget. A handler that raises is
logged and skipped; it never interrupts the combat turn.
"""

import logging
from collections.abc import Callable, Iterable
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

from diceforge.types import SlotIndex

logger = logging.getLogger(__name__)


@dataclass
class GameEvent:
    """Base class for all engine events."""

    pass


@dataclass
class DieValueModifiedEvent(GameEvent):
    """A die's ``modified_value`` changed.

    Attributes:
        die: The die that changed (typed loosely to avoid circular imports).
        old_value: ``modified_value`` before the mutation.
        new_value: ``modified_value`` after the mutation.
        reason: Short label for the mutation ("flat", "percent", "minimum", ...).
        affix_name: Name of the dice affix responsible, if any.
    """

    die: Any
    old_value: int
    new_value: int
    reason: str
    affix_name: str = ""


@dataclass
class DieStateChangedEvent(GameEvent):
    """A non-value property of a die changed (tags, lock, die type, element)."""

    die: Any
    change: str
    detail: str = ""
    affix_name: str = ""


@dataclass
class DieRerolledEvent(GameEvent):
    """A die was rerolled by an affix or by spending a reroll."""

    die: Any
    old_value: int
    new_value: int


@dataclass
class DieDuplicateRequestedEvent(GameEvent):
    """DUPLICATE_ON_MAX fired. The hand/pool owner decides where the copy goes."""

    die: Any
    slot_index: SlotIndex
    affix_name: str = ""


@dataclass
class StatusGrantedEvent(GameEvent):
    """A dice affix asked for a status effect to be applied.

    Attributes:
        status_id: Identifier of the status template.
        stacks: Number of stacks to apply.
        target: "enemy" or "self"; the combat resolver picks the combatant.
        die: The die whose affix produced the grant.
    """

    status_id: str
    stacks: int
    target: str = "enemy"
    die: Any = None


@dataclass
class SetBonusChangedEvent(GameEvent):
    """The equipped piece count of a set changed."""

    set_id: str
    new_count: int
    total_pieces: int
    active_thresholds: list[int] = field(default_factory=list)


@dataclass
class StatusTickEvent(GameEvent):
    """A status instance ticked. ``result`` is a :class:`TickResult`."""

    status_id: str
    stacks: int
    result: Any


@dataclass
class StatusExpiredEvent(GameEvent):
    """A status instance expired and was removed from its tracker."""

    status_id: str
    source_name: str = ""


class EventBus:
    """Simple event bus for publish/subscribe pattern."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable]] = {}

    def subscribe(self, event_type: type, handler: Callable) -> None:
        """Subscribe a handler to an event type."""
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Callable) -> None:
        """Unsubscribe a handler from an event type."""
        if event_type in self._handlers:
            with suppress(ValueError):
                self._handlers[event_type].remove(handler)

    def publish(self, event: GameEvent) -> None:
        """Publish an event to all subscribed handlers."""
        event_type = type(event)
        if event_type in self._handlers:
            # Copy the handler list to allow safe subscribe/unsubscribe during dispatch
            for handler in list(self._handlers[event_type]):
                try:
                    handler(event)
                except Exception:
                    logger.exception(f"Error handling event {event_type.__name__}")


# Global event bus instance
_global_event_bus = EventBus()


def subscribe_to_event(event_type: type, handler: Callable) -> None:
    """Subscribe to an event type globally."""
    _global_event_bus.subscribe(event_type, handler)


def unsubscribe_from_event(event_type: type, handler: Callable) -> None:
    """Unsubscribe from an event type globally."""
    _global_event_bus.unsubscribe(event_type, handler)


def publish_event(event: GameEvent) -> None:
    """Publish an event globally."""
    _global_event_bus.publish(event)


def publish_events(events: Iterable[GameEvent]) -> None:
    """Forward a batch of engine events, in order, to the global bus."""
    for event in events:
        _global_event_bus.publish(event)


def reset_event_bus_for_testing() -> None:
    """Reset the global event bus. Use only in tests."""
    global _global_event_bus
    _global_event_bus = EventBus()
