"""Data structures describing AI actions and the suggestions they produce."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum

from ..core.ranges import TextRange


class ActionCategory(str, Enum):
    """Closed set of categories used to group actions in menus.

    Declaration order is the display order.
    """

    REWRITE = "rewrite"
    CITATIONS = "citations"
    EXPLAIN = "explain"
    STRUCTURE = "structure"
    REVIEW = "review"

    @property
    def display_title(self) -> str:
        return _CATEGORY_TITLES[self]

    @property
    def default_icon(self) -> str:
        return _CATEGORY_ICONS[self]

    @classmethod
    def coerce(cls, value: ActionCategory | str | None) -> ActionCategory | None:
        """Return the matching category, or ``None`` when ``value`` is not a member."""

        if isinstance(value, ActionCategory):
            return value
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


_CATEGORY_TITLES = {
    ActionCategory.REWRITE: "Rewrite",
    ActionCategory.CITATIONS: "Citations",
    ActionCategory.EXPLAIN: "Explain",
    ActionCategory.STRUCTURE: "Structure",
    ActionCategory.REVIEW: "Review",
}

_CATEGORY_ICONS = {
    ActionCategory.REWRITE: "arrow.triangle.2.circlepath",
    ActionCategory.CITATIONS: "quote.opening",
    ActionCategory.EXPLAIN: "lightbulb",
    ActionCategory.STRUCTURE: "list.bullet.indent",
    ActionCategory.REVIEW: "checkmark.circle",
}


@dataclass(slots=True, frozen=True, eq=False)
class ActionDefinition:
    """A named, categorized unit of AI-assisted editing behaviour.

    Two definitions are equal when their composite ids match; the registry
    relies on this to override built-ins by identity.
    """

    category: ActionCategory
    local_id: str
    title: str
    prompt_template: str = ""
    requires_selection: bool = True
    routes_to_external_app: bool = False
    icon: str | None = None

    @property
    def composite_id(self) -> str:
        category = self.category.value if isinstance(self.category, ActionCategory) else str(self.category)
        return f"{category}.{self.local_id}"

    @property
    def effective_icon(self) -> str:
        """Return the action icon, falling back to the category icon."""

        if self.icon:
            return self.icon
        category = ActionCategory.coerce(self.category)
        return category.default_icon if category is not None else ""

    def same_fields(self, other: ActionDefinition) -> bool:
        """Return ``True`` when every field (not only the identity) matches."""

        return (
            self.composite_id == other.composite_id
            and self.title == other.title
            and self.prompt_template == other.prompt_template
            and self.requires_selection == other.requires_selection
            and self.routes_to_external_app == other.routes_to_external_app
            and self.icon == other.icon
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ActionDefinition):
            return NotImplemented
        return self.composite_id == other.composite_id

    def __hash__(self) -> int:
        return hash(self.composite_id)


@dataclass(slots=True, frozen=True)
class DocumentContext:
    """Immutable per-invocation snapshot of the text around a selection."""

    selected_text: str = ""
    surrounding_paragraph: str | None = None
    document_title: str | None = None
    section_heading: str | None = None
    full_source: str | None = None


def _new_suggestion_id() -> str:
    return f"suggestion-{uuid.uuid4().hex[:8]}"


@dataclass(slots=True, frozen=True)
class Suggestion:
    """Original and proposed replacement text for a document selection.

    Instances are snapshots. A streaming run produces a sequence of them that
    share one ``suggestion_id`` while ``suggested_text`` grows; the last one
    has ``is_streaming`` set to ``False``.
    """

    original_text: str
    suggested_text: str
    source_action: ActionDefinition
    target_range: TextRange = field(default_factory=TextRange.zero)
    is_streaming: bool = False
    suggestion_id: str = field(default_factory=_new_suggestion_id)

    def with_chunk(self, chunk: str) -> Suggestion:
        """Return the next streaming snapshot with ``chunk`` appended."""

        return replace(self, suggested_text=self.suggested_text + chunk, is_streaming=True)

    def finished(self) -> Suggestion:
        """Return the final snapshot of a stream."""

        return replace(self, is_streaming=False)


__all__ = [
    "ActionCategory",
    "ActionDefinition",
    "DocumentContext",
    "Suggestion",
]
