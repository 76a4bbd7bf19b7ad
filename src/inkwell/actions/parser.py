"""Parser for the ``ai-prompts.yaml`` action configuration language.

The format looks like YAML but only a small, fixed subset is understood::

    # comment
    rewrite:                  # category header, column 0
      improve_clarity:        # action header, 2 spaces
        title: "Improve clarity"
        icon: text.magnifyingglass
        requires_selection: true
        opens_external: false
        prompt: |
          Rewrite the following text to improve clarity.
          Output only the rewritten text.

Trailing ``# comments`` are allowed on header lines only; in a property line
everything after the colon is the value.

Parsing happens in two stages. :func:`tokenize` classifies every line on its
own; :class:`ActionConfigParser` then feeds the tokens through a small state
machine (:class:`ParserState`). A malformed action block is dropped and the
rest of the file still loads.

Indentation policy: a leading tab counts as one nesting level (2 columns).
Indent 0 is the category level, 2-3 the action level, 4 or more the property
level. A line below the property level that is not a valid header ends the
open block: at column 0 it closes the category, at indent 1-3 it closes the
action. Inside a prompt block every line indented 4 or more is content,
including lines that start with ``#``. The common indentation of the content
lines is removed; ``|N`` pins it to ``N`` columns past the ``prompt`` key.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Sequence

from .errors import ParseSkip
from .models import ActionCategory, ActionDefinition

LOGGER = logging.getLogger(__name__)

ACTION_INDENT = 2
PROPERTY_INDENT = 4
TAB_SIZE = 2

_HEADER_RE = re.compile(r"^([A-Za-z0-9_\-]+):\s*$")
_PROPERTY_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*):(.*)$")
_TRAILING_COMMENT_RE = re.compile(r"\s+#.*$")
_BLOCK_INDICATOR_RE = re.compile(r"^(?:[|>](?:([1-9])[+-]?|[+-]([1-9])?)?)?$")
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_KNOWN_PROPERTIES = frozenset({"title", "icon", "requires_selection", "opens_external", "prompt"})


class TokenKind(str, Enum):
    BLANK = "blank"
    COMMENT = "comment"
    CATEGORY = "category"
    ACTION = "action"
    PROPERTY = "property"
    TEXT = "text"


@dataclass(slots=True, frozen=True)
class Token:
    """One classified configuration line.

    Attributes:
        kind: Line classification, independent of parser state.
        line_no: 1-based line number.
        indent: Leading indentation in columns after tab expansion.
        line: The line with tabs in its indentation expanded and trailing
            whitespace removed.
        key: Header name or property key, when applicable.
        value: Raw property value (unquoted later), when applicable.
    """

    kind: TokenKind
    line_no: int
    indent: int
    line: str
    key: str | None = None
    value: str = ""


def tokenize(text: str) -> Iterator[Token]:
    """Classify each line of ``text`` into a :class:`Token`."""

    if text.startswith("\ufeff"):
        text = text[1:]
    for line_no, raw_line in enumerate(text.splitlines(), start=1):
        line = _normalize_indentation(raw_line).rstrip()
        stripped = line.lstrip(" ")
        indent = len(line) - len(stripped)
        if not stripped:
            yield Token(TokenKind.BLANK, line_no, 0, "")
            continue
        if stripped.startswith("#"):
            yield Token(TokenKind.COMMENT, line_no, indent, line)
            continue
        header = _HEADER_RE.match(_TRAILING_COMMENT_RE.sub("", stripped))
        if header and indent == 0:
            yield Token(TokenKind.CATEGORY, line_no, indent, line, key=header.group(1))
            continue
        if header and ACTION_INDENT <= indent < PROPERTY_INDENT:
            yield Token(TokenKind.ACTION, line_no, indent, line, key=header.group(1))
            continue
        prop = _PROPERTY_RE.match(stripped)
        if prop and indent >= PROPERTY_INDENT:
            yield Token(
                TokenKind.PROPERTY,
                line_no,
                indent,
                line,
                key=prop.group(1),
                value=prop.group(2).strip(),
            )
            continue
        yield Token(TokenKind.TEXT, line_no, indent, line)


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _normalize_indentation(line: str) -> str:
    stripped = line.lstrip(" \t")
    leading = line[: len(line) - len(stripped)]
    if "\t" in leading:
        leading = leading.expandtabs(TAB_SIZE)
    return leading + stripped


class ParserState(str, Enum):
    EXPECT_CATEGORY = "expect_category"
    EXPECT_ACTION = "expect_action"
    COLLECT_PROPERTY = "collect_property"
    COLLECT_PROMPT_BLOCK = "collect_prompt_block"


@dataclass(slots=True)
class _ActionAccumulator:
    category_name: str | None
    action_key: str
    line_no: int
    properties: dict[str, str] = field(default_factory=dict)
    prompt_lines: list[str] | None = None
    block_indent: int | None = None

    def add_prompt_line(self, token: Token) -> None:
        assert self.prompt_lines is not None
        self.prompt_lines.append("" if token.kind is TokenKind.BLANK else token.line)

    def close_prompt_block(self) -> None:
        if self.prompt_lines is None:
            return
        content = [line for line in self.prompt_lines if line]
        cut = self.block_indent
        if cut is None:
            cut = min((_indent_of(line) for line in content), default=0)
        lines = [line[min(_indent_of(line), cut):] for line in self.prompt_lines]
        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()
        self.properties["prompt"] = "\n".join(lines)
        self.prompt_lines = None

    def build(self) -> ActionDefinition:
        if self.category_name is None:
            raise ParseSkip(f"action '{self.action_key}' has no enclosing category")
        category = ActionCategory.coerce(self.category_name)
        if category is None:
            raise ParseSkip(f"unknown category '{self.category_name}'")
        title = self.properties.get("title", "")
        if not title:
            raise ParseSkip(f"action '{self.action_key}' has no title")
        return ActionDefinition(
            category=category,
            local_id=self.action_key,
            title=title,
            prompt_template=self.properties.get("prompt", ""),
            requires_selection=_parse_bool(self.properties.get("requires_selection"), default=True),
            routes_to_external_app=_parse_bool(self.properties.get("opens_external"), default=False),
            icon=self.properties.get("icon") or None,
        )


class ActionConfigParser:
    """Single forward pass over configuration tokens.

    The parser is reusable: :meth:`parse` resets all state. For step-wise use
    (and tests) call :meth:`feed` per token and :meth:`finish` at the end.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._state = ParserState.EXPECT_CATEGORY
        self._category: str | None = None
        self._current: _ActionAccumulator | None = None
        self._definitions: list[ActionDefinition] = []
        self._skipped = 0

    @property
    def state(self) -> ParserState:
        return self._state

    @property
    def skipped(self) -> int:
        """Number of action blocks dropped so far."""

        return self._skipped

    def parse(self, text: str | None) -> list[ActionDefinition]:
        self.reset()
        if not text:
            return []
        for token in tokenize(text):
            self.feed(token)
        return self.finish()

    def feed(self, token: Token) -> None:
        if self._state is ParserState.COLLECT_PROMPT_BLOCK:
            if self._consume_prompt_line(token):
                return
        if token.kind in (TokenKind.BLANK, TokenKind.COMMENT):
            return
        if token.kind is TokenKind.CATEGORY:
            self._flush()
            self._category = token.key
            if ActionCategory.coerce(token.key) is None:
                LOGGER.warning(
                    "Unknown action category '%s' on line %d; its actions will be skipped",
                    token.key,
                    token.line_no,
                )
            self._state = ParserState.EXPECT_ACTION
            return
        if token.kind is TokenKind.ACTION:
            self._flush()
            self._current = _ActionAccumulator(
                category_name=self._category,
                action_key=str(token.key),
                line_no=token.line_no,
            )
            self._state = ParserState.COLLECT_PROPERTY
            return
        if token.kind is TokenKind.PROPERTY and self._state is ParserState.COLLECT_PROPERTY:
            self._set_property(token)
            return
        if token.kind is TokenKind.TEXT and token.indent < PROPERTY_INDENT:
            self._close_malformed(token)
            return
        LOGGER.debug("Ignoring line %d in state %s: %r", token.line_no, self._state.value, token.line)

    def finish(self) -> list[ActionDefinition]:
        self._flush()
        self._state = ParserState.EXPECT_CATEGORY
        definitions = list(self._definitions)
        LOGGER.debug("Parsed %d action(s), skipped %d", len(definitions), self._skipped)
        return definitions

    def _consume_prompt_line(self, token: Token) -> bool:
        """Return ``True`` when ``token`` belongs to the open prompt block."""

        current = self._current
        assert current is not None
        if token.kind is TokenKind.BLANK or token.indent >= PROPERTY_INDENT:
            current.add_prompt_line(token)
            return True
        if token.kind is TokenKind.COMMENT:
            return True
        current.close_prompt_block()
        self._state = ParserState.COLLECT_PROPERTY
        return False

    def _close_malformed(self, token: Token) -> None:
        """End the category (column 0) or action (indent 1-3) a stray line sits in."""

        self._flush()
        if token.indent == 0:
            self._category = None
            self._state = ParserState.EXPECT_CATEGORY
            LOGGER.warning(
                "Malformed category header on line %d: %r; its actions will be skipped",
                token.line_no,
                token.line,
            )
            return
        self._state = ParserState.EXPECT_CATEGORY if self._category is None else ParserState.EXPECT_ACTION
        if _TRAILING_COMMENT_RE.sub("", token.line).endswith(":"):
            self._skipped += 1
            LOGGER.warning("Skipping malformed action header on line %d: %r", token.line_no, token.line)
        else:
            LOGGER.debug("Stray line %d closes the current action: %r", token.line_no, token.line)

    def _set_property(self, token: Token) -> None:
        current = self._current
        assert current is not None
        key = str(token.key)
        if key not in _KNOWN_PROPERTIES:
            LOGGER.debug("Ignoring unknown property '%s' on line %d", key, token.line_no)
            return
        indicator = _BLOCK_INDICATOR_RE.match(token.value) if key == "prompt" else None
        if indicator is not None:
            width = indicator.group(1) or indicator.group(2)
            current.prompt_lines = []
            current.block_indent = token.indent + int(width) if width else None
            self._state = ParserState.COLLECT_PROMPT_BLOCK
            return
        current.properties[key] = _unquote(token.value)

    def _flush(self) -> None:
        current = self._current
        self._current = None
        if current is None:
            return
        current.close_prompt_block()
        try:
            definition = current.build()
        except ParseSkip as exc:
            self._skipped += 1
            LOGGER.warning("Skipping action block at line %d: %s", current.line_no, exc)
            return
        self._definitions.append(definition)


def parse_actions(text: str | None) -> list[ActionDefinition]:
    """Parse configuration ``text`` into action definitions.

    Never raises: malformed blocks are dropped and missing text yields ``[]``.
    """

    return ActionConfigParser().parse(text)


def serialize_actions(definitions: Iterable[ActionDefinition], *, header: str | None = None) -> str:
    """Render ``definitions`` in the configuration grammar.

    Definitions are grouped under their category in first-appearance order, so
    ``parse_actions(serialize_actions(defs))`` yields the same definitions.
    """

    grouped: dict[str, list[ActionDefinition]] = {}
    for definition in definitions:
        category = ActionCategory.coerce(definition.category)
        if category is None:
            continue
        grouped.setdefault(category.value, []).append(definition)

    lines: list[str] = []
    if header:
        lines.extend(f"# {row}".rstrip() for row in header.splitlines())
        lines.append("")
    for category_name, items in grouped.items():
        lines.append(f"{category_name}:")
        for definition in items:
            lines.extend(_serialize_action(definition))
        lines.append("")
    return "\n".join(lines).rstrip("\n") + "\n" if lines else ""


def _serialize_action(definition: ActionDefinition) -> Sequence[str]:
    pad = " " * PROPERTY_INDENT
    lines = [
        f"{' ' * ACTION_INDENT}{definition.local_id}:",
        f'{pad}title: "{definition.title}"',
    ]
    if definition.icon:
        lines.append(f'{pad}icon: "{definition.icon}"')
    lines.append(f"{pad}requires_selection: {'true' if definition.requires_selection else 'false'}")
    lines.append(f"{pad}opens_external: {'true' if definition.routes_to_external_app else 'false'}")
    prompt = definition.prompt_template
    if not prompt.strip():
        lines.append(f'{pad}prompt: ""')
        return lines
    rows = [row for row in prompt.splitlines() if row.strip()]
    # An explicit width keeps the leading indentation of an all-indented prompt.
    indicator = "|2" if all(row[0].isspace() for row in rows) else "|"
    lines.append(f"{pad}prompt: {indicator}")
    content_pad = " " * (PROPERTY_INDENT + 2)
    for row in prompt.splitlines():
        lines.append(f"{content_pad}{row}".rstrip() if row.strip() else "")
    return lines


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def _parse_bool(value: str | None, *, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


__all__ = [
    "ActionConfigParser",
    "ParserState",
    "Token",
    "TokenKind",
    "parse_actions",
    "serialize_actions",
    "tokenize",
]
