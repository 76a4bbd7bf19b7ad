"""Action registry: built-in baseline merged with custom definitions."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from types import MappingProxyType
from typing import Callable, Iterable, Iterator, Mapping, Sequence

from ..events import ActionsReloaded, EventBus
from .builtin import BUILTIN_ACTIONS
from .loader import ConfigLoader
from .models import ActionCategory, ActionDefinition
from .parser import parse_actions

LOGGER = logging.getLogger(__name__)

ParseFn = Callable[[str | None], Sequence[ActionDefinition]]


def merge_actions(
    baseline: Iterable[ActionDefinition],
    custom: Iterable[ActionDefinition] = (),
) -> dict[str, ActionDefinition]:
    """Merge ``custom`` into ``baseline`` by composite id.

    A definition whose id is already present replaces the existing entry in
    its original slot; any other definition is appended. Definitions with a
    category outside :class:`ActionCategory` are dropped.
    """

    merged: dict[str, ActionDefinition] = {}
    for source in (baseline, custom):
        for definition in source:
            normalized = _normalize_category(definition)
            if normalized is None:
                continue
            # Assigning an existing key keeps its insertion position.
            merged[normalized.composite_id] = normalized
    return merged


def _normalize_category(definition: ActionDefinition) -> ActionDefinition | None:
    category = ActionCategory.coerce(definition.category)
    if category is None:
        LOGGER.warning(
            "Dropping action '%s': category '%s' is not supported",
            definition.local_id,
            definition.category,
        )
        return None
    if category is not definition.category:
        return replace(definition, category=category)
    return definition


class RegistrySnapshot:
    """Immutable, insertion-ordered view of the merged actions."""

    __slots__ = ("_entries", "_custom_count")

    def __init__(self, entries: Mapping[str, ActionDefinition], *, custom_count: int = 0) -> None:
        self._entries = MappingProxyType(dict(entries))
        self._custom_count = custom_count

    @classmethod
    def build(
        cls,
        baseline: Iterable[ActionDefinition],
        custom: Sequence[ActionDefinition] = (),
    ) -> RegistrySnapshot:
        accepted = [d for d in map(_normalize_category, custom) if d is not None]
        # A repeated id replaces the earlier entry, so it counts once.
        custom_count = len({definition.composite_id for definition in accepted})
        return cls(merge_actions(baseline, accepted), custom_count=custom_count)

    @property
    def custom_count(self) -> int:
        return self._custom_count

    def actions(self) -> list[ActionDefinition]:
        return list(self._entries.values())

    def actions_for(self, category: ActionCategory | str) -> list[ActionDefinition]:
        target = ActionCategory.coerce(category)
        if target is None:
            return []
        return [action for action in self._entries.values() if action.category is target]

    def available_categories(self) -> list[ActionCategory]:
        """Categories with at least one action, in enumeration order."""

        present = {action.category for action in self._entries.values()}
        return [category for category in ActionCategory if category in present]

    def get(self, composite_id: str) -> ActionDefinition | None:
        return self._entries.get(composite_id)

    def ids(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, composite_id: object) -> bool:
        return composite_id in self._entries

    def __iter__(self) -> Iterator[ActionDefinition]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"RegistrySnapshot(actions={len(self)}, custom={self._custom_count})"


class ActionRegistry:
    """Owns the current :class:`RegistrySnapshot` and rebuilds it on reload.

    Readers always get a complete snapshot: a reload builds the new merge off
    to the side and publishes it with a single reference swap.
    """

    def __init__(
        self,
        baseline: Iterable[ActionDefinition] = BUILTIN_ACTIONS,
        loader: ConfigLoader | None = None,
        *,
        parser: ParseFn = parse_actions,
        event_bus: EventBus | None = None,
    ) -> None:
        self._baseline: tuple[ActionDefinition, ...] = tuple(baseline)
        self._loader = loader
        self._parse = parser
        self._bus = event_bus
        self._reload_lock = threading.Lock()
        self._snapshot = RegistrySnapshot.build(self._baseline)

    @property
    def snapshot(self) -> RegistrySnapshot:
        return self._snapshot

    @property
    def baseline(self) -> tuple[ActionDefinition, ...]:
        return self._baseline

    def reload(self) -> RegistrySnapshot:
        """Re-run loader, parser and merge, then publish the new snapshot."""

        with self._reload_lock:
            text = self._loader.load_text() if self._loader is not None else None
            custom = list(self._parse(text)) if text else []
            return self._publish(custom)

    def apply_custom(self, definitions: Iterable[ActionDefinition]) -> RegistrySnapshot:
        """Merge host-supplied ``definitions`` instead of reading the loader."""

        with self._reload_lock:
            return self._publish(list(definitions))

    def _publish(self, custom: Sequence[ActionDefinition]) -> RegistrySnapshot:
        snapshot = RegistrySnapshot.build(self._baseline, custom)
        self._snapshot = snapshot
        if custom:
            LOGGER.info(
                "Loaded %d custom prompt(s); %d action(s) available", snapshot.custom_count, len(snapshot)
            )
        if self._bus is not None:
            self._bus.publish(ActionsReloaded(total=len(snapshot), custom=snapshot.custom_count))
        return snapshot

    def actions(self) -> list[ActionDefinition]:
        return self._snapshot.actions()

    def actions_for(self, category: ActionCategory | str) -> list[ActionDefinition]:
        return self._snapshot.actions_for(category)

    def available_categories(self) -> list[ActionCategory]:
        return self._snapshot.available_categories()

    def get(self, composite_id: str) -> ActionDefinition | None:
        return self._snapshot.get(composite_id)


__all__ = ["ActionRegistry", "RegistrySnapshot", "merge_actions"]
