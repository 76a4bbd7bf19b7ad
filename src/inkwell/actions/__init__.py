"""AI action definitions, configuration parsing, and execution."""

from .builtin import BUILTIN_ACTIONS
from .coordinator import CitationManager, ExecutionCoordinator
from .errors import (
    ActionEngineError,
    ErrorCode,
    ExecutionSupersededError,
    HandledExternallyError,
    InvalidTransitionError,
    NoSelectionError,
    ProviderError,
    ProviderUnavailableError,
    UnknownActionError,
)
from .lifecycle import Error, Idle, Loading, Ready, SuggestionLifecycle, SuggestionState
from .loader import ConfigLoader, FileConfigLoader, StaticConfigLoader
from .models import ActionCategory, ActionDefinition, DocumentContext, Suggestion
from .parser import ActionConfigParser, parse_actions, serialize_actions
from .registry import ActionRegistry, RegistrySnapshot, merge_actions
from .templates import resolve_template

__all__ = [
    "BUILTIN_ACTIONS",
    "ActionCategory",
    "ActionConfigParser",
    "ActionDefinition",
    "ActionEngineError",
    "ActionRegistry",
    "CitationManager",
    "ConfigLoader",
    "DocumentContext",
    "Error",
    "ErrorCode",
    "ExecutionCoordinator",
    "ExecutionSupersededError",
    "FileConfigLoader",
    "HandledExternallyError",
    "Idle",
    "InvalidTransitionError",
    "Loading",
    "NoSelectionError",
    "ProviderError",
    "ProviderUnavailableError",
    "Ready",
    "RegistrySnapshot",
    "StaticConfigLoader",
    "Suggestion",
    "SuggestionLifecycle",
    "SuggestionState",
    "UnknownActionError",
    "merge_actions",
    "parse_actions",
    "resolve_template",
    "serialize_actions",
]
