"""Tests for configuration loaders."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from inkwell.actions.loader import (
    ACTIONS_FILENAME,
    ConfigLoader,
    FileConfigLoader,
    StaticConfigLoader,
    default_actions_path,
)


def test_reads_utf8_file(tmp_path: Path) -> None:
    path = tmp_path / ACTIONS_FILENAME
    path.write_text("review:\n  café:\n", encoding="utf-8")

    assert FileConfigLoader(path).load_text() == "review:\n  café:\n"


def test_missing_file_returns_none(tmp_path: Path) -> None:
    assert FileConfigLoader(tmp_path / "nope.yaml").load_text() is None


def test_undecodable_file_is_logged_and_ignored(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / ACTIONS_FILENAME
    path.write_bytes(b"\xff\xfe\x00broken")

    with caplog.at_level(logging.WARNING, logger="inkwell.actions.loader"):
        assert FileConfigLoader(path).load_text() is None

    assert "Failed to read custom prompts" in caplog.text


def test_directory_path_is_logged_and_ignored(tmp_path: Path) -> None:
    assert FileConfigLoader(tmp_path).load_text() is None


def test_default_path_honours_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    assert default_actions_path().name == ACTIONS_FILENAME

    monkeypatch.setenv("INKWELL_ACTIONS_PATH", str(tmp_path / "custom.yaml"))

    assert default_actions_path() == tmp_path / "custom.yaml"
    assert FileConfigLoader().path == tmp_path / "custom.yaml"


def test_loaders_satisfy_protocol(tmp_path: Path) -> None:
    assert isinstance(StaticConfigLoader("x"), ConfigLoader)
    assert isinstance(FileConfigLoader(tmp_path / "x"), ConfigLoader)
    assert StaticConfigLoader().load_text() is None
