"""Core domain types shared across the action engine."""

from .ranges import TextRange

__all__ = ["TextRange"]
