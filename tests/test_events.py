"""Tests for the event bus system."""

import logging

import pytest

from diceforge.events import (
    DieValueModifiedEvent,
    EventBus,
    GameEvent,
    SetBonusChangedEvent,
    publish_event,
    publish_events,
    reset_event_bus_for_testing,
    subscribe_to_event,
    unsubscribe_from_event,
)


class TestEventBus:
    """Tests for the EventBus class."""

    def test_handler_exception_does_not_crash_event_bus(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A failing handler is logged and the remaining handlers still run."""
        bus = EventBus()
        handler_calls: list[str] = []

        def failing_handler(event: GameEvent) -> None:
            handler_calls.append("failing")
            raise ValueError("Handler failed!")

        def succeeding_handler(event: GameEvent) -> None:
            handler_calls.append("succeeding")

        bus.subscribe(SetBonusChangedEvent, failing_handler)
        bus.subscribe(SetBonusChangedEvent, succeeding_handler)

        with caplog.at_level(logging.ERROR):
            bus.publish(SetBonusChangedEvent("ember", 2, 3))

        assert handler_calls == ["failing", "succeeding"]
        assert "Error handling event SetBonusChangedEvent" in caplog.text
        assert "Handler failed!" in caplog.text

    def test_handlers_only_receive_their_event_type(self) -> None:
        bus = EventBus()
        received: list[GameEvent] = []
        bus.subscribe(SetBonusChangedEvent, received.append)

        bus.publish(
            DieValueModifiedEvent(die=None, old_value=1, new_value=2, reason="flat")
        )
        bus.publish(SetBonusChangedEvent("ember", 1, 3))

        assert len(received) == 1
        assert isinstance(received[0], SetBonusChangedEvent)

    def test_unsubscribe_unknown_handler_is_ignored(self) -> None:
        bus = EventBus()
        bus.unsubscribe(SetBonusChangedEvent, lambda event: None)


class TestGlobalBus:
    def test_publish_events_forwards_in_order(self) -> None:
        received: list[int] = []
        subscribe_to_event(SetBonusChangedEvent, lambda e: received.append(e.new_count))

        publish_events(SetBonusChangedEvent("ember", n, 3) for n in (1, 2, 3))

        assert received == [1, 2, 3]

    def test_unsubscribe_stops_delivery(self) -> None:
        received: list[GameEvent] = []
        subscribe_to_event(SetBonusChangedEvent, received.append)
        unsubscribe_from_event(SetBonusChangedEvent, received.append)

        publish_event(SetBonusChangedEvent("ember", 1, 3))

        assert received == []

    def test_reset_drops_subscribers(self) -> None:
        received: list[GameEvent] = []
        subscribe_to_event(SetBonusChangedEvent, received.append)
        reset_event_bus_for_testing()

        publish_event(SetBonusChangedEvent("ember", 1, 3))

        assert received == []
