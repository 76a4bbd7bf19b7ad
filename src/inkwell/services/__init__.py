"""Service layer helpers (settings, citation hand-off)."""

from .citations import UrlSchemeCitationManager, build_search_url
from .settings import SecretVault, Settings, SettingsStore, redact_secret

__all__ = [
    "SecretVault",
    "Settings",
    "SettingsStore",
    "UrlSchemeCitationManager",
    "build_search_url",
    "redact_secret",
]
