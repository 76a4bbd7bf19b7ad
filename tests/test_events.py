"""Unit tests for :mod:`inkwell.events`."""

from __future__ import annotations

import gc
import logging
from dataclasses import dataclass

import pytest

from inkwell.actions.lifecycle import IDLE, Loading
from inkwell.events import ActionsReloaded, Event, EventBus, ProcessingChanged, SuggestionStateChanged
from tests.helpers import make_action


@dataclass(slots=True)
class SampleEvent(Event):
    message: str
    value: int = 0


class _Listener:
    def __init__(self) -> None:
        self.received: list[Event] = []

    def on_event(self, event: Event) -> None:
        self.received.append(event)


class TestSubscription:
    def test_subscribe_and_publish(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[SampleEvent] = []

        bus.subscribe(SampleEvent, received.append)
        bus.publish(SampleEvent(message="hello", value=1))

        assert received == [SampleEvent(message="hello", value=1)]
        assert bus.handler_count(SampleEvent) == 1

    def test_handlers_run_in_registration_order(self) -> None:
        bus: EventBus[Event] = EventBus()
        order: list[str] = []

        bus.subscribe(SampleEvent, lambda event: order.append("first"))
        bus.subscribe(SampleEvent, lambda event: order.append("second"))
        bus.publish(SampleEvent(message="x"))

        assert order == ["first", "second"]

    def test_only_matching_type_is_invoked(self) -> None:
        bus: EventBus[Event] = EventBus()
        processing: list[ProcessingChanged] = []
        bus.subscribe(ProcessingChanged, processing.append)

        bus.publish(SampleEvent(message="ignored"))
        bus.publish(ProcessingChanged(is_processing=True))

        assert processing == [ProcessingChanged(is_processing=True)]

    def test_unsubscribe_removes_first_registration(self) -> None:
        bus: EventBus[Event] = EventBus()
        calls: list[str] = []

        def handler(event: SampleEvent) -> None:
            calls.append(event.message)

        bus.subscribe(SampleEvent, handler)
        bus.subscribe(SampleEvent, handler)
        bus.unsubscribe(SampleEvent, handler)
        bus.publish(SampleEvent(message="once"))

        assert calls == ["once"]
        bus.unsubscribe(ProcessingChanged, handler)

    def test_clear_and_handler_count(self) -> None:
        bus: EventBus[Event] = EventBus()
        bus.subscribe(SampleEvent, lambda event: None)
        bus.subscribe(ActionsReloaded, lambda event: None)

        assert bus.handler_count() == 2
        bus.clear()
        assert bus.handler_count() == 0


class TestPublish:
    def test_failing_handler_does_not_stop_others(self, caplog: pytest.LogCaptureFixture) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[SampleEvent] = []

        def broken(event: SampleEvent) -> None:
            raise RuntimeError("boom")

        bus.subscribe(SampleEvent, broken)
        bus.subscribe(SampleEvent, received.append)

        with caplog.at_level(logging.ERROR, logger="inkwell.events"):
            bus.publish(SampleEvent(message="still delivered"))

        assert len(received) == 1
        assert "raised exception" in caplog.text

    def test_state_change_event_carries_both_states(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[SuggestionStateChanged] = []
        bus.subscribe(SuggestionStateChanged, received.append)
        loading = Loading(make_action())

        bus.publish(SuggestionStateChanged(previous=IDLE, current=loading))

        assert received[0].previous is IDLE
        assert received[0].current == loading


class TestWeakReferences:
    def test_bound_method_is_dropped_after_gc(self) -> None:
        bus: EventBus[Event] = EventBus()
        listener = _Listener()
        bus.subscribe(SampleEvent, listener.on_event)

        bus.publish(SampleEvent(message="alive"))
        assert len(listener.received) == 1

        del listener
        gc.collect()
        bus.publish(SampleEvent(message="gone"))

        assert bus.handler_count(SampleEvent) == 0

    def test_unsubscribe_bound_method(self) -> None:
        bus: EventBus[Event] = EventBus()
        listener = _Listener()
        bus.subscribe(SampleEvent, listener.on_event)

        bus.unsubscribe(SampleEvent, listener.on_event)
        bus.publish(SampleEvent(message="x"))

        assert listener.received == []

    def test_dead_reference_pruned_while_handler_unsubscribes_another(self) -> None:
        bus: EventBus[Event] = EventBus()
        kept: list[Event] = []
        victim_calls: list[Event] = []

        def victim(event: Event) -> None:
            victim_calls.append(event)

        def remover(event: Event) -> None:
            bus.unsubscribe(SampleEvent, victim)

        listener = _Listener()
        bus.subscribe(SampleEvent, remover)
        bus.subscribe(SampleEvent, victim)
        bus.subscribe(SampleEvent, listener.on_event)
        bus.subscribe(SampleEvent, kept.append)
        del listener
        gc.collect()

        bus.publish(SampleEvent(message="first"))
        bus.publish(SampleEvent(message="second"))

        assert [event.message for event in kept] == ["first", "second"]
        assert bus.handler_count(SampleEvent) == 2
