"""Built-in action baseline shipped with Inkwell.

Custom definitions loaded from ``ai-prompts.yaml`` override these by
composite id or are appended after them.
"""

from __future__ import annotations

from .models import ActionCategory, ActionDefinition

_R = ActionCategory.REWRITE
_C = ActionCategory.CITATIONS
_E = ActionCategory.EXPLAIN
_S = ActionCategory.STRUCTURE
_V = ActionCategory.REVIEW


def _prompt(*lines: str) -> str:
    return "\n".join(lines)


BUILTIN_ACTIONS: tuple[ActionDefinition, ...] = (
    # Rewrite
    ActionDefinition(
        _R,
        "improve_clarity",
        "Improve clarity",
        _prompt(
            "Rewrite the following text to improve clarity while preserving the meaning.",
            "Use active voice, shorter sentences, and precise word choices.",
            "Output only the rewritten text, no explanations.",
        ),
        icon="text.magnifyingglass",
    ),
    ActionDefinition(
        _R,
        "make_concise",
        "Make concise",
        _prompt(
            "Rewrite the following text to be more concise.",
            "Remove redundancy, unnecessary qualifiers, and filler words.",
            "Preserve the core meaning. Output only the rewritten text.",
        ),
        icon="arrow.down.right.and.arrow.up.left",
    ),
    ActionDefinition(
        _R,
        "make_formal",
        "Make formal",
        _prompt(
            "Rewrite the following text in a more formal, academic tone.",
            "Use appropriate scholarly language and passive voice where suitable.",
            "Output only the rewritten text.",
        ),
        icon="graduationcap",
    ),
    ActionDefinition(
        _R,
        "expand_detail",
        "Expand with detail",
        _prompt(
            "Expand the following text by adding more detail and explanation.",
            "Develop the ideas more fully while maintaining the original argument.",
            "Output only the expanded text.",
        ),
        icon="arrow.up.left.and.arrow.down.right",
    ),
    ActionDefinition(
        _R,
        "fix_grammar",
        "Fix grammar & spelling",
        _prompt(
            "Fix any grammar, spelling, or punctuation errors in the following text.",
            "Do not change the meaning or style. Output only the corrected text.",
        ),
        icon="textformat.abc",
    ),
    # Citations
    ActionDefinition(
        _C,
        "find_supporting",
        "Find supporting citation",
        "",
        routes_to_external_app=True,
        icon="magnifyingglass",
    ),
    ActionDefinition(
        _C,
        "check_needed",
        "Check citation needed",
        _prompt(
            "Analyze the following text and identify any claims that should be supported by citations.",
            "For each claim, explain why a citation would strengthen it and suggest what type of source "
            "would be appropriate.",
            "Format as a numbered list.",
        ),
        icon="exclamationmark.triangle",
    ),
    ActionDefinition(
        _C,
        "format",
        "Format citation",
        _prompt(
            "The following text contains citation information (author names, titles, years, etc.).",
            "Convert it into a properly formatted citation in a standard academic format.",
            "If the format is ambiguous, use APA style. Output only the formatted citation.",
        ),
        icon="text.quote",
    ),
    # Explain
    ActionDefinition(
        _E,
        "simplify_general",
        "Simplify for general audience",
        _prompt(
            "Rewrite the following technical or academic text for a general audience.",
            "Replace jargon with plain language, add brief explanations of complex concepts.",
            "Maintain accuracy while improving accessibility. Output only the rewritten text.",
        ),
        icon="person.2",
    ),
    ActionDefinition(
        _E,
        "add_technical",
        "Add technical detail",
        _prompt(
            "Expand the following text by adding more technical detail and precision.",
            "Include relevant terminology, specific mechanisms, or quantitative information.",
            "Output only the expanded text.",
        ),
        icon="gearshape.2",
    ),
    ActionDefinition(
        _E,
        "define_terms",
        "Define terms",
        _prompt(
            "Identify technical terms, acronyms, or specialized vocabulary in the following text.",
            "Provide brief, clear definitions for each term.",
            "Format as a list with the term followed by its definition.",
        ),
        icon="character.book.closed",
    ),
    # Structure
    ActionDefinition(
        _S,
        "to_bullets",
        "Convert to bullet points",
        _prompt(
            "Convert the following prose into a clear, well-organized bullet point list.",
            "Each bullet should capture one distinct idea. Use sub-bullets for related details.",
            "Output only the bullet points, using - for bullets and indentation for hierarchy.",
        ),
        icon="list.bullet",
    ),
    ActionDefinition(
        _S,
        "to_paragraph",
        "Convert to paragraph",
        _prompt(
            "Convert the following bullet points or list into flowing prose paragraphs.",
            "Add appropriate transitions between ideas. Maintain all the information.",
            "Output only the paragraph text.",
        ),
        icon="text.alignleft",
    ),
    ActionDefinition(
        _S,
        "add_transition",
        "Add transition sentence",
        _prompt(
            "Write a transition sentence that would smoothly connect the ideas in the following text.",
            "The transition should bridge between the preceding and following content.",
            "Output only the transition sentence.",
        ),
        icon="arrow.right",
    ),
    ActionDefinition(
        _S,
        "suggest_heading",
        "Suggest section heading",
        _prompt(
            "Based on the following text, suggest 3 appropriate section headings that accurately "
            "describe the content.",
            "Headings should be concise (2-6 words) and descriptive.",
            "Format as a numbered list.",
        ),
        icon="number",
    ),
    # Review
    ActionDefinition(
        _V,
        "check_flow",
        "Check logical flow",
        _prompt(
            "Analyze the logical flow and coherence of the following text.",
            "Identify any gaps in reasoning, unclear transitions, or logical jumps.",
            "Provide specific suggestions for improvement.",
        ),
        icon="arrow.triangle.branch",
    ),
    ActionDefinition(
        _V,
        "weak_arguments",
        "Identify weak arguments",
        _prompt(
            "Analyze the arguments in the following text.",
            "Identify any weak points, unsupported claims, or potential counterarguments.",
            "For each issue, suggest how to strengthen the argument.",
        ),
        icon="exclamationmark.bubble",
    ),
    ActionDefinition(
        _V,
        "suggest_improvements",
        "Suggest improvements",
        _prompt(
            "Review the following text and provide 3-5 specific suggestions for improvement.",
            "Consider clarity, structure, argument strength, and academic style.",
            "Format as a numbered list with brief explanations.",
        ),
        icon="lightbulb.max",
    ),
)

FIND_SUPPORTING_CITATION_ID = "citations.find_supporting"

__all__ = ["BUILTIN_ACTIONS", "FIND_SUPPORTING_CITATION_ID"]
