"""Shared test helpers and stub collaborators.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from inkwell.actions.models import ActionCategory, ActionDefinition


def make_action(
    local_id: str = "improve_clarity",
    *,
    category: ActionCategory | str = ActionCategory.REWRITE,
    title: str | None = None,
    prompt: str = "Rewrite: {{selection}}",
    requires_selection: bool = True,
    external: bool = False,
    icon: str | None = None,
) -> ActionDefinition:
    return ActionDefinition(
        category=category,  # type: ignore[arg-type]
        local_id=local_id,
        title=title if title is not None else local_id.replace("_", " ").capitalize(),
        prompt_template=prompt,
        requires_selection=requires_selection,
        routes_to_external_app=external,
        icon=icon,
    )


class ScriptedProvider:
    """Completion provider that replays a fixed reply or chunk list.

    ``error`` is raised by :meth:`complete`, and by the stream after
    ``fail_after`` chunks (after the last chunk when ``fail_after`` is unset).
    """

    def __init__(
        self,
        reply: str = "Improved text",
        *,
        chunks: list[str] | None = None,
        error: Exception | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.reply = reply
        self.chunks = list(chunks or [])
        self.error = error
        self.fail_after = fail_after
        self.complete_calls: list[tuple[str, str, int]] = []
        self.stream_calls: list[tuple[str, str, int]] = []
        self.streams_closed = 0

    async def complete(self, system_prompt: str, user_message: str, max_tokens: int) -> str:
        self.complete_calls.append((system_prompt, user_message, max_tokens))
        if self.error is not None:
            raise self.error
        return self.reply

    async def stream(self, system_prompt: str, user_message: str, max_tokens: int) -> AsyncIterator[str]:
        self.stream_calls.append((system_prompt, user_message, max_tokens))
        try:
            for index, chunk in enumerate(self.chunks):
                if self.error is not None and self.fail_after == index:
                    raise self.error
                yield chunk
            if self.error is not None and (self.fail_after is None or self.fail_after >= len(self.chunks)):
                raise self.error
        finally:
            self.streams_closed += 1


class GatedProvider:
    """Provider whose ``complete`` calls block until released by index."""

    def __init__(self) -> None:
        self.gates: list[asyncio.Event] = []
        self.replies: list[str] = []
        self.calls: list[str] = []

    async def complete(self, system_prompt: str, user_message: str, max_tokens: int) -> str:
        index = len(self.gates)
        gate = asyncio.Event()
        self.gates.append(gate)
        self.replies.append("")
        self.calls.append(user_message)
        await gate.wait()
        return self.replies[index]

    def release(self, index: int, reply: str) -> None:
        self.replies[index] = reply
        self.gates[index].set()

    async def stream(self, system_prompt: str, user_message: str, max_tokens: int) -> AsyncIterator[str]:
        raise NotImplementedError
        yield ""  # pragma: no cover


class StallingStreamProvider:
    """Provider whose stream yields one chunk and then blocks until cancelled."""

    def __init__(self, first_chunk: str = "Partial") -> None:
        self.first_chunk = first_chunk
        self.stalled = asyncio.Event()
        self.closed = False

    async def complete(self, system_prompt: str, user_message: str, max_tokens: int) -> str:
        raise NotImplementedError

    async def stream(self, system_prompt: str, user_message: str, max_tokens: int) -> AsyncIterator[str]:
        try:
            yield self.first_chunk
            self.stalled.set()
            await asyncio.Event().wait()
        finally:
            self.closed = True


class RecordingCitations:
    def __init__(self, error: Exception | None = None) -> None:
        self.queries: list[str] = []
        self.error = error

    def search_for_citation(self, query: str) -> None:
        self.queries.append(query)
        if self.error is not None:
            raise self.error


class AsyncCitations:
    def __init__(self) -> None:
        self.queries: list[str] = []

    async def search_for_citation(self, query: str) -> None:
        await asyncio.sleep(0)
        self.queries.append(query)


async def settle(rounds: int = 3) -> None:
    """Let freshly created tasks run up to their first real suspension."""

    for _ in range(rounds):
        await asyncio.sleep(0)
