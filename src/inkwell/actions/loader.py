"""Configuration sources for custom action definitions."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol, runtime_checkable

LOGGER = logging.getLogger(__name__)

ACTIONS_FILENAME = "ai-prompts.yaml"
_DEFAULT_ACTIONS_PATH = Path.home() / ".inkwell" / ACTIONS_FILENAME
_ACTIONS_PATH_ENV = "INKWELL_ACTIONS_PATH"


@runtime_checkable
class ConfigLoader(Protocol):
    """Supplies raw configuration text; ``None`` means there is no source."""

    def load_text(self) -> str | None:
        ...


class FileConfigLoader:
    """Reads the action configuration from a UTF-8 file on disk.

    A missing file is the normal "no customisation" case. An unreadable file
    is logged and treated the same way so a broken file can never take the
    action menu down with it.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self._path = Path(path).expanduser() if path else default_actions_path()

    @property
    def path(self) -> Path:
        return self._path

    def load_text(self) -> str | None:
        if not self._path.exists():
            LOGGER.info("No custom prompts found at %s, using built-in actions", self._path)
            return None
        try:
            return self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Failed to read custom prompts from %s: %s", self._path, exc)
            return None


class StaticConfigLoader:
    """Serves configuration text held in memory (tests, embedded defaults)."""

    def __init__(self, text: str | None = None) -> None:
        self.text = text

    def load_text(self) -> str | None:
        return self.text


def default_actions_path() -> Path:
    """Return the configured custom-actions path (env override first)."""

    override = os.environ.get(_ACTIONS_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return _DEFAULT_ACTIONS_PATH


__all__ = [
    "ACTIONS_FILENAME",
    "ConfigLoader",
    "FileConfigLoader",
    "StaticConfigLoader",
    "default_actions_path",
]
