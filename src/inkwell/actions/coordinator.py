"""Execution coordinator: runs one action invocation at a time.

The coordinator is the only writer of the suggestion lifecycle. Every
invocation gets a run token; starting another invocation, cancelling, or
resolving the suggestion (accept/reject/clear) retires the token so results
that arrive later are dropped instead of being published over newer state.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, AsyncIterator, Protocol, runtime_checkable

from ..core.ranges import TextRange
from ..events import EventBus, ProcessingChanged
from .errors import (
    ActionEngineError,
    ExecutionSupersededError,
    HandledExternallyError,
    NoSelectionError,
    ProviderError,
    UnknownActionError,
)
from .lifecycle import SuggestionLifecycle, SuggestionState
from .models import ActionDefinition, DocumentContext, Suggestion
from .templates import resolve_template

if TYPE_CHECKING:  # pragma: no cover
    from ..ai.provider import CompletionProvider
    from .registry import ActionRegistry

LOGGER = logging.getLogger(__name__)

CITATION_QUERY_LIMIT = 100


@runtime_checkable
class CitationManager(Protocol):
    """Receives selections routed to an external citation manager."""

    def search_for_citation(self, query: str) -> Any:
        """Start a citation search; the return value is ignored (awaited if awaitable)."""


class _Run:
    """Token identifying one invocation."""

    __slots__ = ("run_id", "action_id", "task", "cancelled")

    def __init__(self, run_id: int, action_id: str, task: asyncio.Task[Any] | None) -> None:
        self.run_id = run_id
        self.action_id = action_id
        self.task = task
        self.cancelled = False

    def __repr__(self) -> str:
        return f"_Run(id={self.run_id}, action={self.action_id!r}, cancelled={self.cancelled})"


class ExecutionCoordinator:
    """Orchestrates precondition checks, routing, completion and lifecycle updates.

    Args:
        registry: Source of actions for :meth:`action_for`.
        provider: Completion provider used for single-shot and streamed runs.
        citations: Citation manager that receives externally routed actions.
        event_bus: Optional bus receiving lifecycle and processing events.
        min_response_tokens: Floor of the single-shot token budget.
        stream_max_tokens: Token budget for streamed runs.
    """

    def __init__(
        self,
        registry: ActionRegistry,
        provider: CompletionProvider,
        citations: CitationManager | None,
        *,
        event_bus: EventBus | None = None,
        min_response_tokens: int = 500,
        stream_max_tokens: int = 2_000,
    ) -> None:
        self._registry = registry
        self._provider = provider
        self._citations = citations
        self._bus = event_bus
        self._lifecycle = SuggestionLifecycle(event_bus)
        self._min_response_tokens = max(1, int(min_response_tokens))
        self._stream_max_tokens = max(1, int(stream_max_tokens))
        self._run_ids = itertools.count(1)
        self._active_run: _Run | None = None
        self._processing = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def lifecycle(self) -> SuggestionLifecycle:
        return self._lifecycle

    @property
    def state(self) -> SuggestionState:
        return self._lifecycle.state

    @property
    def is_processing(self) -> bool:
        return self._processing

    def action_for(self, composite_id: str) -> ActionDefinition:
        action = self._registry.get(composite_id)
        if action is None:
            raise UnknownActionError.for_id(composite_id)
        return action

    def response_budget(self, selected_text: str) -> int:
        """Token budget for a single-shot reply: twice the selection, with a floor."""

        return max(len(selected_text) * 2, self._min_response_tokens)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        action: ActionDefinition,
        selected_text: str,
        text_range: TextRange | Any = None,
        context: DocumentContext | None = None,
    ) -> Suggestion:
        """Run ``action`` as one request and return the resulting suggestion.

        Raises:
            NoSelectionError: The action needs a selection and none was given.
            HandledExternallyError: The action was routed to the citation manager.
            ProviderUnavailableError: No completion provider is configured.
            ProviderError: The provider request failed.
            ExecutionSupersededError: A newer invocation or :meth:`cancel`
                retired this run before the reply arrived.
        """

        await self._check_preconditions(action, selected_text)
        system_prompt = self._resolve_prompt(action, selected_text, context)
        max_tokens = self.response_budget(selected_text)
        target_range = TextRange.from_value(text_range)
        run = self._begin(action)
        LOGGER.info("Executing AI action: %s (max_tokens=%d)", action.composite_id, max_tokens)
        try:
            result = await self._provider.complete(system_prompt, selected_text, max_tokens)
        except asyncio.CancelledError:
            self._finish(run)
            raise
        except Exception as exc:
            error = self._record_failure(run, exc)
            if error is exc:
                raise
            raise error from exc

        if not self._is_current(run):
            LOGGER.debug("Discarding reply from retired run %r", run)
            raise ExecutionSupersededError(message=_retired_message(run))

        try:
            suggestion = Suggestion(
                original_text=selected_text,
                suggested_text=result,
                source_action=action,
                target_range=target_range,
                is_streaming=False,
            )
            self._lifecycle.ready(suggestion)
        finally:
            self._finish(run)
        return suggestion

    async def execute_streaming(
        self,
        action: ActionDefinition,
        selected_text: str,
        text_range: TextRange | Any = None,
        context: DocumentContext | None = None,
    ) -> AsyncIterator[Suggestion]:
        """Run ``action`` as a stream, yielding one snapshot per received chunk.

        The final snapshot has ``is_streaming`` set to ``False``. A retired
        run stops yielding without raising.
        """

        await self._check_preconditions(action, selected_text)
        system_prompt = self._resolve_prompt(action, selected_text, context)
        suggestion = Suggestion(
            original_text=selected_text,
            suggested_text="",
            source_action=action,
            target_range=TextRange.from_value(text_range),
            is_streaming=True,
        )
        run = self._begin(action)
        LOGGER.info(
            "Streaming AI action: %s (max_tokens=%d)", action.composite_id, self._stream_max_tokens
        )
        chunks: AsyncIterator[str] | None = None
        completed = False
        try:
            chunks = self._provider.stream(system_prompt, selected_text, self._stream_max_tokens)
            async for chunk in chunks:
                if not self._is_current(run):
                    break
                if not chunk:
                    continue
                suggestion = suggestion.with_chunk(chunk)
                self._lifecycle.ready(suggestion)
                yield suggestion
                if not self._is_current(run):
                    break
            else:
                completed = True

            if completed and self._is_current(run):
                final = suggestion.finished()
                self._lifecycle.ready(final)
                self._finish(run)
                yield final
            else:
                LOGGER.debug("Stream for %r stopped early", run)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not self._is_current(run):
                LOGGER.debug("Ignoring stream failure from retired run %r: %s", run, exc)
                return
            error = self._record_failure(run, exc)
            if error is exc:
                raise
            raise error from exc
        finally:
            if chunks is not None:
                await _close_stream(chunks)
            self._finish(run)

    # ------------------------------------------------------------------
    # Suggestion resolution
    # ------------------------------------------------------------------

    def accept_suggestion(self) -> str | None:
        """Return the pending suggestion text and reset to Idle; ``None`` if nothing is ready."""

        suggestion = self._lifecycle.ready_suggestion
        if suggestion is None:
            return None
        self._retire_active_run()
        self._lifecycle.reset()
        LOGGER.info("Accepted suggestion from %s", suggestion.source_action.composite_id)
        return suggestion.suggested_text

    def reject_suggestion(self) -> None:
        self._retire_active_run()
        self._lifecycle.reset()

    def clear_suggestion(self) -> None:
        self._retire_active_run()
        self._lifecycle.reset()

    def cancel(self) -> bool:
        """Cancel the in-flight run, leaving the lifecycle state untouched.

        Returns ``True`` when a run was cancelled.
        """

        run = self._active_run
        if run is None:
            LOGGER.debug("ExecutionCoordinator.cancel: no run in flight")
            return False
        LOGGER.info("Cancelling AI action: %s", run.action_id)
        run.cancelled = True
        self._retire_active_run()
        task = run.task
        if task is not None and task is not _current_task() and not task.done():
            task.cancel()
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _check_preconditions(self, action: ActionDefinition, selected_text: str) -> None:
        if action.requires_selection and not selected_text:
            raise NoSelectionError()
        if action.routes_to_external_app:
            await self._route_externally(action, selected_text)
            raise HandledExternallyError(action_id=action.composite_id)

    async def _route_externally(self, action: ActionDefinition, selected_text: str) -> None:
        query = selected_text[:CITATION_QUERY_LIMIT]
        if self._citations is None:
            LOGGER.warning("No citation manager available for %s", action.composite_id)
            return
        LOGGER.info("Routing %s to citation manager", action.composite_id)
        try:
            result = self._citations.search_for_citation(query)
            if inspect.isawaitable(result):
                await result
        except Exception:
            LOGGER.warning("Citation manager failed for %s", action.composite_id, exc_info=True)

    def _resolve_prompt(
        self, action: ActionDefinition, selected_text: str, context: DocumentContext | None
    ) -> str:
        if context is None:
            context = DocumentContext(selected_text=selected_text)
        elif context.selected_text != selected_text:
            context = replace(context, selected_text=selected_text)
        return resolve_template(action.prompt_template, context)

    def _begin(self, action: ActionDefinition) -> _Run:
        previous = self._active_run
        run = _Run(next(self._run_ids), action.composite_id, _current_task())
        self._active_run = run
        if previous is not None:
            LOGGER.debug("Run %r superseded by %r", previous, run)
        self._lifecycle.start(action)
        self._set_processing(True)
        return run

    def _is_current(self, run: _Run) -> bool:
        return self._active_run is run

    def _finish(self, run: _Run) -> None:
        if self._active_run is run:
            self._active_run = None
            self._set_processing(False)

    def _retire_active_run(self) -> None:
        if self._active_run is not None:
            self._active_run = None
            self._set_processing(False)

    def _record_failure(self, run: _Run, exc: Exception) -> ActionEngineError:
        """Publish ``Error`` for the current run and return the error to raise."""

        if not self._is_current(run):
            LOGGER.debug("Ignoring failure from retired run %r: %s", run, exc)
            return ExecutionSupersededError(message=_retired_message(run))
        error = exc if isinstance(exc, ActionEngineError) else ProviderError(message=_message_for(exc))
        LOGGER.warning("AI action %s failed: %s", run.action_id, error)
        self._lifecycle.fail(error.message)
        self._finish(run)
        return error

    def _set_processing(self, value: bool) -> None:
        if self._processing == value:
            return
        self._processing = value
        if self._bus is not None:
            self._bus.publish(ProcessingChanged(is_processing=value))


def _retired_message(run: _Run) -> str:
    if run.cancelled:
        return f"Action '{run.action_id}' was cancelled."
    return f"Action '{run.action_id}' was superseded by a newer request."


def _message_for(exc: BaseException) -> str:
    return str(exc).strip() or type(exc).__name__


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


async def _close_stream(stream: Any) -> None:
    close = getattr(stream, "aclose", None)
    if close is None:
        return
    await close()


__all__ = ["CITATION_QUERY_LIMIT", "CitationManager", "ExecutionCoordinator"]
