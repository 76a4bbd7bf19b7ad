"""Command line entry point for the Inkwell action engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .actions.coordinator import CitationManager, ExecutionCoordinator
from .actions.errors import ActionEngineError
from .actions.loader import FileConfigLoader
from .actions.models import ActionCategory, DocumentContext
from .actions.parser import ActionConfigParser
from .actions.registry import ActionRegistry
from .ai.provider import CompletionProvider, OpenAICompletionProvider
from .events import EventBus
from .services.citations import UrlSchemeCitationManager
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class Engine:
    """Wired-up action engine components."""

    registry: ActionRegistry
    provider: CompletionProvider
    citations: CitationManager
    coordinator: ExecutionCoordinator
    event_bus: EventBus

    async def aclose(self) -> None:
        close = getattr(self.provider, "aclose", None)
        if close is not None:
            await close()


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure logging; the console only shows warnings unless ``debug`` is set."""

    level = logging.DEBUG if debug else logging.INFO
    console_level = logging.DEBUG if debug else logging.WARNING
    logging_utils.setup_logging(level, console_level=console_level, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_engine(
    settings: Settings,
    *,
    actions_path: Path | str | None = None,
    provider: CompletionProvider | None = None,
    citations: CitationManager | None = None,
) -> Engine:
    """Construct the registry, provider and coordinator from ``settings``."""

    bus: EventBus = EventBus()
    loader = FileConfigLoader(actions_path or settings.actions_path)
    registry = ActionRegistry(loader=loader, event_bus=bus)
    registry.reload()
    active_provider = provider or OpenAICompletionProvider.from_client_settings(
        settings.client_settings(), temperature=settings.temperature
    )
    active_citations = citations or UrlSchemeCitationManager(settings.citation_scheme)
    coordinator = ExecutionCoordinator(
        registry,
        active_provider,
        active_citations,
        event_bus=bus,
        min_response_tokens=settings.min_response_tokens,
        stream_max_tokens=settings.stream_max_tokens,
    )
    return Engine(
        registry=registry,
        provider=active_provider,
        citations=active_citations,
        coordinator=coordinator,
        event_bus=bus,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `inkwell` console script."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    debug = args.debug or _env_flag("INKWELL_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("INKWELL_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)
    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    command = args.command or "list"
    if command == "settings":
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return 0
    if command == "check":
        return _check_config(getattr(args, "path", None) or args.actions_path or settings.actions_path)

    engine = build_engine(settings, actions_path=args.actions_path)
    if command == "list":
        return _list_actions(engine.registry, category=getattr(args, "category", None))
    return asyncio.run(_run_action(engine, args))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inkwell",
        description="Run AI editing actions on text or inspect the action configuration.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.inkwell/settings.json path.",
    )
    parser.add_argument(
        "--actions-path",
        metavar="PATH",
        help="Read custom actions from PATH instead of ~/.inkwell/ai-prompts.yaml.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this invocation (repeatable).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging on the console.")

    subparsers = parser.add_subparsers(dest="command")

    list_parser = subparsers.add_parser("list", help="List available actions.")
    list_parser.add_argument(
        "--category",
        choices=[category.value for category in ActionCategory],
        help="Only list actions in this category.",
    )

    check_parser = subparsers.add_parser("check", help="Parse a custom actions file and report the result.")
    check_parser.add_argument("path", nargs="?", help="File to check (defaults to the configured actions path).")

    run_parser = subparsers.add_parser("run", help="Run one action on text from --text or stdin.")
    run_parser.add_argument("action_id", metavar="ACTION_ID", help="Composite id, e.g. rewrite.improve_clarity.")
    run_parser.add_argument("--text", help="Text to run the action on (defaults to stdin).")
    run_parser.add_argument("--stream", action="store_true", help="Print the reply as it streams in.")
    run_parser.add_argument("--title", dest="document_title", help="Document title for {{document_title}}.")
    run_parser.add_argument("--heading", dest="section_heading", help="Section heading for {{section_heading}}.")
    run_parser.add_argument("--paragraph", help="Surrounding paragraph for {{paragraph}}.")

    subparsers.add_parser("settings", help="Print the effective settings (secrets redacted).")
    return parser


def _list_actions(
    registry: ActionRegistry,
    *,
    category: str | None = None,
    stream: TextIO | None = None,
) -> int:
    destination = stream or sys.stdout
    categories = registry.available_categories()
    if category:
        categories = [item for item in categories if item.value == category]
    for item in categories:
        destination.write(f"{item.display_title}\n")
        for action in registry.actions_for(item):
            flags = []
            if not action.requires_selection:
                flags.append("no selection")
            if action.routes_to_external_app:
                flags.append("external")
            suffix = f"  [{', '.join(flags)}]" if flags else ""
            destination.write(f"  {action.composite_id:<36} {action.title}{suffix}\n")
    return 0


def _check_config(path: Path | str | None, *, stream: TextIO | None = None) -> int:
    destination = stream or sys.stdout
    loader = FileConfigLoader(path)
    text = loader.load_text()
    if text is None:
        print(f"No readable actions file at {loader.path}", file=sys.stderr)
        return 1
    parser = ActionConfigParser()
    definitions = parser.parse(text)
    for definition in definitions:
        destination.write(f"{definition.composite_id}: {definition.title}\n")
    destination.write(f"{len(definitions)} action(s) parsed, {parser.skipped} skipped from {loader.path}\n")
    return 0 if parser.skipped == 0 else 1


async def _run_action(engine: Engine, args: argparse.Namespace, *, stream: TextIO | None = None) -> int:
    destination = stream or sys.stdout
    text = args.text if args.text is not None else sys.stdin.read()
    context = DocumentContext(
        selected_text=text,
        surrounding_paragraph=args.paragraph,
        document_title=args.document_title,
        section_heading=args.section_heading,
    )
    coordinator = engine.coordinator
    try:
        action = coordinator.action_for(args.action_id)
        if args.stream:
            emitted = 0
            async for suggestion in coordinator.execute_streaming(action, text, None, context):
                destination.write(suggestion.suggested_text[emitted:])
                destination.flush()
                emitted = len(suggestion.suggested_text)
        else:
            suggestion = await coordinator.execute(action, text, None, context)
            destination.write(suggestion.suggested_text)
        destination.write("\n")
        coordinator.accept_suggestion()
    except ActionEngineError as exc:
        if not exc.is_failure:
            print(exc.message, file=sys.stderr)
            return 0
        print(f"Error: {exc.message}", file=sys.stderr)
        if exc.suggestion:
            print(exc.suggestion, file=sys.stderr)
        return 1
    finally:
        await engine.aclose()
    return 0


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    origin = get_origin(annotation)
    if origin is dict:
        try:
            payload = json.loads(raw_value or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
        if not isinstance(payload, dict):
            raise ValueError("Dict overrides must be valid JSON objects")
        return {str(key): str(value) for key, value in payload.items()}
    if origin is not None:
        if raw_value.lower() in {"none", "null"} and type(None) in get_args(annotation):
            return None
        candidates = [arg for arg in get_args(annotation) if arg is not type(None)]
        annotation = candidates[0] if candidates else str
    if annotation is bool:
        return _parse_bool(raw_value)
    if annotation is int:
        return int(raw_value, 10)
    if annotation is float:
        return float(raw_value)
    return raw_value


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    metadata = {
        "path": str(store.path),
        "secret_backend": store.vault.name,
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("INKWELL_"))


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
