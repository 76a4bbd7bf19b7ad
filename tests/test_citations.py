"""Tests for the URL-scheme citation manager."""

from __future__ import annotations

import logging
import webbrowser

import pytest

from inkwell.actions.coordinator import CitationManager
from inkwell.services.citations import DEFAULT_SCHEME, UrlSchemeCitationManager, build_search_url


class _Opener:
    def __init__(self, result: bool = True, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.urls: list[str] = []

    def __call__(self, url: str) -> bool:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.mark.parametrize(
    "query, scheme, expected",
    [
        ("machine learning", "imbib", "imbib://search?query=machine%20learning"),
        ("a&b=c/d?", "imbib", "imbib://search?query=a%26b%3Dc%2Fd%3F"),
        ("  padded  ", "zotero://", "zotero://search?query=padded"),
        ("", "imbib", "imbib://"),
        ("   ", "imbib", "imbib://"),
        ("q", "", "imbib://search?query=q"),
    ],
)
def test_build_search_url(query: str, scheme: str, expected: str) -> None:
    assert build_search_url(query, scheme=scheme) == expected


def test_non_ascii_queries_are_percent_encoded() -> None:
    assert build_search_url("café") == "imbib://search?query=caf%C3%A9"


def test_search_opens_url() -> None:
    opener = _Opener()
    manager = UrlSchemeCitationManager(opener=opener)

    manager.search_for_citation("neural networks")

    assert manager.scheme == DEFAULT_SCHEME
    assert opener.urls == ["imbib://search?query=neural%20networks"]


def test_custom_scheme() -> None:
    opener = _Opener()

    UrlSchemeCitationManager("bookends", opener=opener).search_for_citation("x")

    assert opener.urls == ["bookends://search?query=x"]


def test_missing_handler_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    manager = UrlSchemeCitationManager(opener=_Opener(result=False))

    with caplog.at_level(logging.WARNING, logger="inkwell.services.citations"):
        manager.search_for_citation("x")

    assert "No handler registered" in caplog.text


@pytest.mark.parametrize("error", [OSError("no display"), webbrowser.Error("no browser")])
def test_opener_errors_are_logged_not_raised(caplog: pytest.LogCaptureFixture, error: Exception) -> None:
    manager = UrlSchemeCitationManager(opener=_Opener(error=error))

    with caplog.at_level(logging.WARNING, logger="inkwell.services.citations"):
        manager.search_for_citation("x")

    assert "Unable to open citation manager" in caplog.text


def test_satisfies_citation_protocol() -> None:
    assert isinstance(UrlSchemeCitationManager(opener=_Opener()), CitationManager)
