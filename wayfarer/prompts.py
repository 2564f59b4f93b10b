"""Handlebars prompt rendering for dialog generation requests."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import pybars

if TYPE_CHECKING:
    from wayfarer.generation import GenerationRequest


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """A prompt template could not be compiled or rendered."""


DEFAULT_DIALOG_TEMPLATE = """\
You are writing one line for an interactive travel story.

Scene: {{{scene.name}}}
{{{scene.description}}}
Chapter: {{phase}}
{{#if flags_text}}Progress so far: {{{flags_text}}}
{{/if}}
{{#if recent}}Recent lines:
{{#last recent 5}}- {{{this}}}
{{/last}}{{/if}}
Speaker: {{{speaker}}}
{{#if hint}}Direction: {{{hint}}}
{{/if}}
Return only the spoken line, nothing else.
"""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_last(this, options, items, count):
    """{{#last array N}}...{{/last}}: iterate over the last N items."""
    result = []
    for item in list(items)[-int(count):]:
        result.extend(options["fn"](item))
    return result


_HELPERS: dict[str, Callable] = {
    "last": _helper_last,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Render a Handlebars template against `context`.

    Compiled templates are kept in a module cache keyed by source text.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def build_context(request: GenerationRequest) -> dict[str, Any]:
    """Assemble template variables for a generation request."""
    return {
        "speaker": request.speaker_name or request.speaker,
        "hint": request.hint,
        "phase": request.phase,
        "scene": {
            "id": request.scene_id,
            "name": request.scene_name,
            "description": request.scene_description,
        },
        "flags": list(request.flags),
        "flags_text": ", ".join(request.flags),
        "recent": list(request.recent_lines),
    }
