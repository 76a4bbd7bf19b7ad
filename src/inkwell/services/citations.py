"""Hand selections off to an external citation manager through its URL scheme."""

from __future__ import annotations

import logging
import webbrowser
from typing import Callable
from urllib.parse import quote

LOGGER = logging.getLogger(__name__)

DEFAULT_SCHEME = "imbib"

UrlOpener = Callable[[str], bool]


def build_search_url(query: str, *, scheme: str = DEFAULT_SCHEME) -> str:
    """Return ``<scheme>://search?query=<encoded>``, or the app root for an empty query."""

    scheme = (scheme or DEFAULT_SCHEME).strip().rstrip(":/")
    query = (query or "").strip()
    if not query:
        return f"{scheme}://"
    return f"{scheme}://search?query={quote(query, safe='')}"


class UrlSchemeCitationManager:
    """Opens citation searches in the registered handler for ``scheme``.

    The call is fire-and-forget: a handler that cannot be launched is logged
    and never reported back to the caller.
    """

    def __init__(self, scheme: str = DEFAULT_SCHEME, *, opener: UrlOpener | None = None) -> None:
        self._scheme = scheme or DEFAULT_SCHEME
        self._open = opener or webbrowser.open

    @property
    def scheme(self) -> str:
        return self._scheme

    def search_for_citation(self, query: str) -> None:
        url = build_search_url(query, scheme=self._scheme)
        LOGGER.debug("Opening citation manager: %s", url)
        try:
            opened = self._open(url)
        except (OSError, webbrowser.Error) as exc:
            LOGGER.warning("Unable to open citation manager via %s: %s", url, exc)
            return
        if not opened:
            LOGGER.warning("No handler registered for %s:// URLs", self._scheme)


__all__ = ["DEFAULT_SCHEME", "UrlSchemeCitationManager", "build_search_url"]
