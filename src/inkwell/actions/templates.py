"""Prompt template substitution."""

from __future__ import annotations

import re

from .models import DocumentContext

PLACEHOLDERS: tuple[str, ...] = ("selection", "paragraph", "document_title", "section_heading")

# One pass over the template: substituted text is never re-scanned.
_PLACEHOLDER_RE = re.compile(r"\{\{(" + "|".join(PLACEHOLDERS) + r")\}\}")


def resolve_template(template: str, context: DocumentContext) -> str:
    """Substitute the fixed placeholder set into ``template``.

    ``{{paragraph}}`` falls back to the selection; ``{{document_title}}`` and
    ``{{section_heading}}`` fall back to an empty string. Unrecognised
    ``{{...}}`` tokens are left as they are.
    """

    if not template:
        return ""
    selection = context.selected_text or ""
    values = {
        "selection": selection,
        "paragraph": context.surrounding_paragraph if context.surrounding_paragraph is not None else selection,
        "document_title": context.document_title or "",
        "section_heading": context.section_heading or "",
    }
    return _PLACEHOLDER_RE.sub(lambda match: values[match.group(1)], template)


def template_placeholders(template: str) -> list[str]:
    """Return the recognised placeholders used by ``template``, in first-use order."""

    seen: list[str] = []
    for match in _PLACEHOLDER_RE.finditer(template or ""):
        name = match.group(1)
        if name not in seen:
            seen.append(name)
    return seen


__all__ = ["PLACEHOLDERS", "resolve_template", "template_placeholders"]
