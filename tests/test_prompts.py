"""Tests for Handlebars prompt rendering: template compilation, context building,
the last helper, and error handling."""

import pytest

from wayfarer.generation import GenerationRequest
from wayfarer.prompts import DEFAULT_DIALOG_TEMPLATE, PromptError, build_context, render_prompt


def _request(**overrides) -> GenerationRequest:
    fields = {
        "request_id": "abc123",
        "speaker": "island_guide",
        "speaker_name": "Lani",
        "hint": "mention the tide",
        "scene_id": "scene_island_arrival",
        "scene_name": "Harbor",
        "scene_description": "Boats bob against the pier.",
        "phase": "destination",
        "flags": ["packed", "met_guide"],
        "recent_lines": ["Welcome ashore!"],
    }
    fields.update(overrides)
    return GenerationRequest(**fields)


# ── render_prompt ────────────────────────────────────────────


def test_render_simple_variable():
    assert render_prompt("Hello {{name}}!", {"name": "World"}) == "Hello World!"


def test_render_if_conditional():
    tpl = "{{#if show}}yes{{else}}no{{/if}}"
    assert render_prompt(tpl, {"show": True}) == "yes"
    assert render_prompt(tpl, {"show": False}) == "no"


def test_render_missing_variable():
    assert render_prompt("Hello {{name}}!", {}) == "Hello !"


def test_render_invalid_template():
    with pytest.raises(PromptError):
        render_prompt("{{> missing_partial}}", {})


def test_last_helper_keeps_tail():
    tpl = "{{#last items 2}}{{this}} {{/last}}"
    assert render_prompt(tpl, {"items": ["a", "b", "c", "d"]}) == "c d "


def test_last_helper_with_short_list():
    tpl = "{{#last items 5}}{{this}};{{/last}}"
    assert render_prompt(tpl, {"items": ["only"]}) == "only;"


# ── build_context ────────────────────────────────────────────


def test_build_context_basic():
    ctx = build_context(_request())
    assert ctx["speaker"] == "Lani"
    assert ctx["hint"] == "mention the tide"
    assert ctx["phase"] == "destination"
    assert ctx["scene"] == {
        "id": "scene_island_arrival",
        "name": "Harbor",
        "description": "Boats bob against the pier.",
    }
    assert ctx["flags"] == ["packed", "met_guide"]
    assert ctx["flags_text"] == "packed, met_guide"
    assert ctx["recent"] == ["Welcome ashore!"]


def test_build_context_falls_back_to_speaker_id():
    ctx = build_context(_request(speaker="narrator", speaker_name=""))
    assert ctx["speaker"] == "narrator"


# ── Default template ─────────────────────────────────────────


def test_default_template_includes_scene_and_direction():
    prompt = render_prompt(DEFAULT_DIALOG_TEMPLATE, build_context(_request()))
    assert "Scene: Harbor" in prompt
    assert "Boats bob against the pier." in prompt
    assert "Progress so far: packed, met_guide" in prompt
    assert "- Welcome ashore!" in prompt
    assert "Speaker: Lani" in prompt
    assert "Direction: mention the tide" in prompt


def test_default_template_omits_empty_sections():
    ctx = build_context(_request(hint="", flags=[], recent_lines=[]))
    prompt = render_prompt(DEFAULT_DIALOG_TEMPLATE, ctx)
    assert "Direction:" not in prompt
    assert "Progress so far" not in prompt
    assert "Recent lines" not in prompt


def test_default_template_shows_only_last_five_lines():
    lines = [f"line {i}" for i in range(7)]
    prompt = render_prompt(DEFAULT_DIALOG_TEMPLATE, build_context(_request(recent_lines=lines)))
    assert "- line 0" not in prompt
    assert "- line 1" not in prompt
    assert "- line 2" in prompt
    assert "- line 6" in prompt


def test_text_is_not_html_escaped():
    ctx = build_context(_request(scene_name="Tom & Jerry's Pier"))
    prompt = render_prompt(DEFAULT_DIALOG_TEMPLATE, ctx)
    assert "Scene: Tom & Jerry's Pier" in prompt
