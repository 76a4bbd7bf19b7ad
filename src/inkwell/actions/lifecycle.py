"""Four-state suggestion lifecycle owned by the execution coordinator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from ..events import EventBus, SuggestionStateChanged
from .errors import InvalidTransitionError
from .models import ActionDefinition, Suggestion

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Idle:
    """No action pending and no suggestion on offer."""


@dataclass(slots=True, frozen=True)
class Loading:
    action: ActionDefinition


@dataclass(slots=True, frozen=True)
class Ready:
    suggestion: Suggestion


@dataclass(slots=True, frozen=True)
class Error:
    message: str


SuggestionState = Union[Idle, Loading, Ready, Error]

IDLE = Idle()

_ALLOWED: dict[type, frozenset[type]] = {
    Idle: frozenset({Idle, Loading}),
    Loading: frozenset({Idle, Loading, Ready, Error}),
    Ready: frozenset({Idle, Loading, Ready, Error}),
    Error: frozenset({Idle, Loading}),
}


class SuggestionLifecycle:
    """Single-writer state slot with ordered change notifications.

    Permitted transitions:

    * any state -> ``Loading`` (a new request discards an unaccepted suggestion)
    * ``Loading`` -> ``Ready`` / ``Error``
    * ``Ready`` -> ``Ready`` (stream growth, same suggestion id) / ``Error``
    * any state -> ``Idle`` (accept, reject, clear)

    Every transition is published as :class:`SuggestionStateChanged` before
    the next one can happen.
    """

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self._state: SuggestionState = IDLE
        self._bus = event_bus
        self._transitions = 0

    @property
    def state(self) -> SuggestionState:
        return self._state

    @property
    def transition_count(self) -> int:
        return self._transitions

    @property
    def is_idle(self) -> bool:
        return isinstance(self._state, Idle)

    @property
    def ready_suggestion(self) -> Suggestion | None:
        state = self._state
        return state.suggestion if isinstance(state, Ready) else None

    def start(self, action: ActionDefinition) -> None:
        self._transition(Loading(action))

    def ready(self, suggestion: Suggestion) -> None:
        self._transition(Ready(suggestion))

    def fail(self, message: str) -> None:
        self._transition(Error(message))

    def reset(self) -> None:
        if isinstance(self._state, Idle):
            return
        self._transition(IDLE)

    def _transition(self, new_state: SuggestionState) -> None:
        previous = self._state
        allowed = _ALLOWED[type(previous)]
        if type(new_state) not in allowed:
            raise InvalidTransitionError(
                message=f"Cannot move from {type(previous).__name__} to {type(new_state).__name__}"
            )
        if isinstance(previous, Ready) and isinstance(new_state, Ready):
            if previous.suggestion.suggestion_id != new_state.suggestion.suggestion_id:
                raise InvalidTransitionError(
                    message="Ready can only be re-entered by the suggestion it already holds"
                )
        self._state = new_state
        self._transitions += 1
        if self._bus is not None:
            self._bus.publish(SuggestionStateChanged(previous=previous, current=new_state))


__all__ = [
    "IDLE",
    "Error",
    "Idle",
    "Loading",
    "Ready",
    "SuggestionLifecycle",
    "SuggestionState",
]
