"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from inkwell.services.settings import SecretVault, Settings, SettingsStore, redact_secret


def _store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "settings.json", vault=SecretVault(key_path=tmp_path / "settings.key"))


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    settings = _store(tmp_path).load()

    assert settings == Settings()
    assert settings.min_response_tokens == 500
    assert settings.stream_max_tokens == 2000
    assert settings.citation_scheme == "imbib"


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    original = Settings(
        base_url="https://example.com/v1",
        api_key="super-secret",
        model="gpt-4.1-mini",
        organization="acme",
        request_timeout=30.0,
        actions_path=str(tmp_path / "actions.yaml"),
        min_response_tokens=800,
        default_headers={"X-Test": "1"},
        metadata={"env": "dev"},
    )

    SettingsStore(path).save(original)
    reloaded = SettingsStore(path).load()

    assert reloaded == original


def test_api_key_is_encrypted_on_disk(tmp_path: Path) -> None:
    store = _store(tmp_path)

    store.save(Settings(api_key="sk-plain-value"))

    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert "api_key" not in raw
    assert raw["api_key_ciphertext"].startswith("fernet:")
    assert "sk-plain-value" not in store.path.read_text(encoding="utf-8")
    assert raw["version"] == 1
    assert not store.path.with_suffix(".tmp").exists()


def test_load_migrates_legacy_plaintext_api_key(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.path.write_text(
        json.dumps({"base_url": "https://old", "api_key": "plain-key", "model": "gpt-3.5"}),
        encoding="utf-8",
    )

    loaded = store.load()

    assert loaded.api_key == "plain-key"
    assert loaded.base_url == "https://old"
    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert "api_key" not in raw
    assert store.vault.decrypt(raw["api_key_ciphertext"]) == "plain-key"


def test_unknown_fields_are_ignored(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.path.write_text(json.dumps({"model": "m", "theme": "dark", "version": 1}), encoding="utf-8")

    assert store.load().model == "m"


@pytest.mark.parametrize("body", ["{not json", "[1, 2, 3]"])
def test_unreadable_payload_falls_back_to_defaults(
    tmp_path: Path, caplog: pytest.LogCaptureFixture, body: str
) -> None:
    store = _store(tmp_path)
    store.path.write_text(body, encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="inkwell.services.settings"):
        assert store.load() == Settings()

    assert "Settings file" in caplog.text


def test_undecryptable_key_is_dropped(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    store = _store(tmp_path)
    store.path.write_text(
        json.dumps({"api_key_ciphertext": "fernet:garbage", "model": "m", "version": 1}),
        encoding="utf-8",
    )

    with caplog.at_level(logging.WARNING, logger="inkwell.services.settings"):
        loaded = store.load()

    assert loaded.api_key == ""
    assert loaded.model == "m"
    assert "Unable to decrypt API key" in caplog.text


def test_env_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.save(Settings(base_url="https://local", api_key="abc"))
    monkeypatch.setenv("INKWELL_BASE_URL", "https://env-base")
    monkeypatch.setenv("INKWELL_API_KEY", "env-key")
    monkeypatch.setenv("INKWELL_DEBUG_LOGGING", "yes")
    monkeypatch.setenv("INKWELL_REQUEST_TIMEOUT", "12.5")
    monkeypatch.setenv("INKWELL_MIN_RESPONSE_TOKENS", "640")

    overridden = store.load()

    assert overridden.base_url == "https://env-base"
    assert overridden.api_key == "env-key"
    assert overridden.debug_logging is True
    assert overridden.request_timeout == 12.5
    assert overridden.min_response_tokens == 640


def test_invalid_numeric_env_override_is_ignored(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("INKWELL_MAX_RETRIES", "lots")
    monkeypatch.setenv("INKWELL_TEMPERATURE", "warm")

    with caplog.at_level(logging.WARNING, logger="inkwell.services.settings"):
        settings = _store(tmp_path).load()

    assert settings.max_retries == 3
    assert settings.temperature == 0.2
    assert "not a valid integer" in caplog.text
    assert "not a valid float" in caplog.text


def test_cli_overrides_apply_before_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    store = _store(tmp_path)
    monkeypatch.setenv("INKWELL_MODEL", "env-model")

    settings = store.load(overrides={"model": "cli-model", "citation_scheme": "zotero", "unknown": 1, "base_url": None})

    assert settings.model == "env-model"
    assert settings.citation_scheme == "zotero"
    assert settings.base_url == Settings().base_url


def test_overrides_are_not_persisted(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.save(Settings(model="saved"))

    store.load(overrides={"model": "temporary"})

    assert store.load().model == "saved"


def test_client_settings_projection() -> None:
    settings = Settings(api_key="k", model="m", default_headers={}, metadata={"app": "inkwell"}, max_retries=5)

    client = settings.client_settings()

    assert client.api_key == "k"
    assert client.model == "m"
    assert client.max_retries == 5
    assert client.default_headers is None
    assert client.metadata == {"app": "inkwell"}


class TestSecretVault:
    def test_roundtrip_and_key_reuse(self, tmp_path: Path) -> None:
        key_path = tmp_path / "vault.key"
        token = SecretVault(key_path=key_path).encrypt("hunter2")

        assert token.startswith("fernet:")
        assert SecretVault(key_path=key_path).decrypt(token) == "hunter2"
        assert key_path.exists()

    def test_empty_values(self, tmp_path: Path) -> None:
        vault = SecretVault(key_path=tmp_path / "vault.key")

        assert vault.encrypt("") == ""
        assert vault.decrypt(None) == ""

    def test_foreign_backend_is_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Unsupported secret backend"):
            SecretVault(key_path=tmp_path / "vault.key").decrypt("keyring:abc")

    def test_token_from_other_key_is_rejected(self, tmp_path: Path) -> None:
        token = SecretVault(key_path=tmp_path / "one.key").encrypt("secret")

        with pytest.raises(ValueError, match="Invalid Fernet token"):
            SecretVault(key_path=tmp_path / "two.key").decrypt(token)


@pytest.mark.parametrize(
    "value, expected",
    [("", ""), ("abc", "***"), ("sk-123456", "sk*****56"), ("  abcdef  ", "ab**ef")],
)
def test_redact_secret(value: str, expected: str) -> None:
    assert redact_secret(value) == expected
