"""Event bus used to publish action-engine state changes to observers.

The execution coordinator is the single writer of the suggestion lifecycle;
UI layers (menus, suggestion popovers, status bars) subscribe here instead of
polling the coordinator.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

    from .actions.lifecycle import SuggestionState

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events published on the :class:`EventBus`."""


@dataclass(slots=True)
class SuggestionStateChanged(Event):
    """Emitted for every lifecycle transition, in publication order.

    Attributes:
        previous: The state before the transition.
        current: The state after the transition.
    """

    previous: SuggestionState
    current: SuggestionState


@dataclass(slots=True)
class ProcessingChanged(Event):
    """Emitted when the coordinator starts or stops processing an action."""

    is_processing: bool


@dataclass(slots=True)
class ActionsReloaded(Event):
    """Emitted after the registry publishes a new snapshot.

    Attributes:
        total: Number of actions in the new snapshot.
        custom: Number of custom definitions merged into the baseline.
    """

    total: int
    custom: int


# Streaming re-enters Ready once per chunk; keep those out of the debug log.
_QUIET_EVENT_TYPES: set[type] = {SuggestionStateChanged}


class EventBus(Generic[E]):
    """A typed publish-subscribe event bus.

    Handlers are invoked synchronously in registration order, so observers
    see events in exactly the order they were published. Bound-method
    handlers are held weakly so a discarded view does not keep receiving
    updates.

    Thread Safety:
        Not thread-safe. Publish and subscribe from the event loop thread.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``."""

        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug(
            "Subscribed handler %s to event type %s",
            _handler_name(handler),
            event_type.__name__,
        )

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""

        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                return

    def publish(self, event: E) -> None:
        """Broadcast ``event`` to every registered handler.

        A handler that raises is logged and the remaining handlers still run.
        """

        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        if event_type not in _QUIET_EVENT_TYPES:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        # Handlers may (un)subscribe while publishing, so remove by identity.
        for handler_ref in dead:
            for index, candidate in enumerate(handlers):
                if candidate is handler_ref:
                    del handlers[index]
                    break

    def clear(self) -> None:
        """Remove all registered handlers."""

        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Return the number of handlers for ``event_type`` (or overall)."""

        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: Any, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if self._is_weak:
            return self._ref()
        return self._ref

    def matches(self, handler: Handler) -> bool:
        return self.resolve() == handler


def _handler_name(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "SuggestionStateChanged",
    "ProcessingChanged",
    "ActionsReloaded",
]
