"""Structured helpers for representing the document span a suggestion targets."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Iterator


@dataclass(slots=True, frozen=True)
class TextRange(Sequence[int]):
    """Location/length pair identifying a selection inside the document store.

    The action engine treats the range as opaque: it is captured when an action
    starts and handed back untouched on the resulting suggestion so the caller
    knows where to apply the accepted text.
    """

    location: int
    length: int = 0

    def __post_init__(self) -> None:
        location = self._coerce(self.location, "location")
        length = self._coerce(self.length, "length")
        object.__setattr__(self, "location", location)
        object.__setattr__(self, "length", length)

    @staticmethod
    def _coerce(value: Any, label: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"TextRange {label} must be an integer") from exc
        if number < 0:
            return 0
        return number

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int | slice) -> int | tuple[int, ...]:
        if isinstance(index, slice):
            return self.to_tuple()[index]
        if index == 0:
            return self.location
        if index == 1:
            return self.length
        raise IndexError("TextRange index out of range")

    def __iter__(self) -> Iterator[int]:
        yield self.location
        yield self.length

    @property
    def end(self) -> int:
        """Return the exclusive end offset of the range."""

        return self.location + self.length

    @property
    def is_caret(self) -> bool:
        """Return ``True`` when the range collapses to a caret."""

        return self.length == 0

    def to_tuple(self) -> tuple[int, int]:
        return (self.location, self.length)

    def to_dict(self) -> dict[str, int]:
        return {"location": self.location, "length": self.length}

    @classmethod
    def from_value(cls, value: Any) -> TextRange:
        """Coerce ``value`` into a :class:`TextRange`.

        Accepts an existing range, a ``{"location", "length"}`` mapping, a
        ``{"start", "end"}`` mapping, or a two-item sequence of
        ``(location, length)``.
        """

        if isinstance(value, TextRange):
            return value
        if value is None:
            return cls.zero()
        if isinstance(value, Mapping):
            if "location" in value:
                return cls(value["location"], value.get("length", 0))
            start = value.get("start")
            end = value.get("end")
            if start is None or end is None:
                raise ValueError("TextRange mappings require location or start/end keys")
            start_i, end_i = sorted((int(start), int(end)))
            return cls(start_i, end_i - start_i)
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("TextRange sequences must have exactly two entries")
            return cls(seq[0], seq[1])
        raise TypeError("Unsupported TextRange input")

    @classmethod
    def zero(cls) -> TextRange:
        """Return a caret-aligned range at offset 0."""

        return cls(0, 0)


__all__ = ["TextRange"]
