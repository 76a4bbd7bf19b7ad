"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from inkwell.actions.coordinator import ExecutionCoordinator
from inkwell.actions.registry import ActionRegistry
from inkwell.events import EventBus, ProcessingChanged, SuggestionStateChanged
from tests.helpers import RecordingCitations, ScriptedProvider


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in (
        "INKWELL_API_KEY",
        "INKWELL_BASE_URL",
        "INKWELL_MODEL",
        "INKWELL_ACTIONS_PATH",
        "INKWELL_DEBUG",
        "INKWELL_DEBUG_LOGGING",
        "INKWELL_SETTINGS_PATH",
        "INKWELL_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INKWELL_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def state_changes(event_bus: EventBus) -> list[SuggestionStateChanged]:
    received: list[SuggestionStateChanged] = []
    event_bus.subscribe(SuggestionStateChanged, received.append)
    return received


@pytest.fixture
def processing_changes(event_bus: EventBus) -> list[bool]:
    received: list[bool] = []
    event_bus.subscribe(ProcessingChanged, lambda event: received.append(event.is_processing))
    return received


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def citations() -> RecordingCitations:
    return RecordingCitations()


@pytest.fixture
def registry() -> ActionRegistry:
    return ActionRegistry()


@pytest.fixture
def coordinator(
    registry: ActionRegistry,
    provider: ScriptedProvider,
    citations: RecordingCitations,
    event_bus: EventBus,
) -> ExecutionCoordinator:
    return ExecutionCoordinator(registry, provider, citations, event_bus=event_bus)
