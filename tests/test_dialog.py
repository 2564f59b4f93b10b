"""Tests for wayfarer.dialog — choice visibility, successors, speakers."""

import pytest

from wayfarer.dialog import DEFAULT_SPEAKER_COLOR, PLAYER_LABEL, DialogResolver
from wayfarer.errors import ContentReferenceError, InvalidChoice
from wayfarer.models import DialogNode


@pytest.fixture
def resolver(bundle) -> DialogResolver:
    return DialogResolver(bundle)


# ── Choices ─────────────────────────────────────────────────


class TestAvailableChoices:
    def test_hidden_choice_excluded(self, resolver):
        ids = [c.id for c in resolver.get_available_choices("dialog_decide_destination", set())]
        assert ids == ["choice_island", "choice_book", "choice_broken", "choice_later"]

    def test_authored_order_preserved_when_unlocked(self, resolver):
        ids = [c.id for c in resolver.get_available_choices(
            "dialog_decide_destination", {"destination_chosen"}
        )]
        assert ids == ["choice_island", "choice_again", "choice_book", "choice_broken", "choice_later"]

    def test_node_without_choices_returns_empty(self, resolver):
        assert resolver.get_available_choices("dialog_planning_start", {"anything"}) == []

    def test_unknown_node(self, resolver):
        with pytest.raises(ContentReferenceError):
            resolver.get_available_choices("dialog_missing", set())

    def test_generated_overlay_consulted_first(self, resolver):
        node = DialogNode(id="generated:1", speaker="narrator", text="Fresh line.")
        assert resolver.get_available_choices("generated:1", set(), {"generated:1": node}) == []
        assert resolver.node("generated:1", {"generated:1": node}).text == "Fresh line."


class TestSelectChoice:
    def test_visible_choice(self, resolver, bundle):
        node = bundle.dialog("dialog_pack_luggage")
        assert resolver.select_choice(node, "choice_pack_full", set()).id == "choice_pack_full"

    def test_unknown_choice(self, resolver, bundle):
        node = bundle.dialog("dialog_pack_luggage")
        with pytest.raises(InvalidChoice):
            resolver.select_choice(node, "choice_fly", set())

    def test_hidden_choice(self, resolver, bundle):
        node = bundle.dialog("dialog_decide_destination")
        with pytest.raises(InvalidChoice):
            resolver.select_choice(node, "choice_again", set())


class TestSuccessors:
    def test_next_node(self, resolver, bundle):
        assert resolver.successor(bundle.dialog("dialog_planning_start")).id == "dialog_planning_thought"

    def test_terminal_node(self, resolver, bundle):
        assert resolver.successor(bundle.dialog("dialog_planning_thought")) is None

    def test_choice_target(self, resolver, bundle):
        choice = bundle.dialog("dialog_pack_luggage").choices[0]
        assert resolver.choice_target(choice).id == "dialog_light_pack"

    def test_dangling_choice_target(self, resolver, bundle):
        broken = next(
            c for c in bundle.dialog("dialog_decide_destination").choices if c.id == "choice_broken"
        )
        with pytest.raises(ContentReferenceError):
            resolver.choice_target(broken)


# ── Speakers ────────────────────────────────────────────────


class TestResolveSpeaker:
    def test_narrator_has_no_name(self, resolver):
        speaker = resolver.resolve_speaker("narrator")
        assert speaker.name == ""

    def test_player_gets_fixed_label_and_character_color(self, resolver):
        speaker = resolver.resolve_speaker("player")
        assert speaker.name == PLAYER_LABEL
        assert speaker.color == "#4caf50"

    def test_registered_character(self, resolver):
        speaker = resolver.resolve_speaker("airport_staff")
        assert speaker.name == "Yun"
        assert speaker.color == "#667eea"
        assert speaker.sprite == "yun.png"

    def test_emotion_selects_sprite(self, resolver):
        assert resolver.resolve_speaker("airport_staff", "happy").sprite == "yun_happy.png"
        assert resolver.resolve_speaker("airport_staff", "furious").sprite == "yun.png"

    def test_unknown_speaker_falls_back_to_raw_id(self, resolver):
        speaker = resolver.resolve_speaker("mystery_guest")
        assert speaker.name == "mystery_guest"
        assert speaker.color == DEFAULT_SPEAKER_COLOR
