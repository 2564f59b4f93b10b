"""Dialog resolution: speakers, visible choices, successors.

Turns a dialog node id plus the current flag set into renderable state. Nodes
come from the content bundle, or from the engine's overlay of generated nodes
when a node was produced by the content-generation collaborator.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping

from pydantic import BaseModel

from wayfarer.conditions import evaluate
from wayfarer.content import ContentBundle
from wayfarer.errors import InvalidChoice
from wayfarer.models import DialogChoice, DialogNode

logger = logging.getLogger(__name__)

PLAYER_LABEL = "You"
DEFAULT_SPEAKER_COLOR = "#cccccc"


class Speaker(BaseModel):
    id: str
    name: str
    color: str
    sprite: str | None = None


class DialogResolver:
    def __init__(self, bundle: ContentBundle) -> None:
        self._bundle = bundle

    def node(
        self, node_id: str, generated: Mapping[str, DialogNode] | None = None
    ) -> DialogNode:
        if generated and node_id in generated:
            return generated[node_id]
        return self._bundle.dialog(node_id)

    def get_available_choices(
        self,
        node_id: str,
        flags: Collection[str],
        generated: Mapping[str, DialogNode] | None = None,
    ) -> list[DialogChoice]:
        """Choices whose condition holds, in authored order.

        An empty list means the node has no choices to offer and the caller
        should treat it as an `advance` node.
        """
        node = self.node(node_id, generated)
        return [c for c in node.choices if evaluate(c.condition, flags)]

    def select_choice(
        self,
        node: DialogNode,
        choice_id: str,
        flags: Collection[str],
    ) -> DialogChoice:
        """Return the visible choice `choice_id` or raise InvalidChoice."""
        for choice in node.choices:
            if choice.id != choice_id:
                continue
            if not evaluate(choice.condition, flags):
                raise InvalidChoice(f"Choice {choice_id!r} is not available")
            return choice
        raise InvalidChoice(f"Node {node.id!r} has no choice {choice_id!r}")

    def successor(self, node: DialogNode) -> DialogNode | None:
        """Next node for an advance, or None when this dialog thread ends here."""
        if node.next is None:
            return None
        return self._bundle.dialog(node.next)

    def choice_target(self, choice: DialogChoice) -> DialogNode | None:
        if choice.next_id is None:
            return None
        return self._bundle.dialog(choice.next_id)

    def resolve_speaker(self, speaker_id: str, emotion: str | None = None) -> Speaker:
        if speaker_id == "narrator":
            return Speaker(id=speaker_id, name="", color=DEFAULT_SPEAKER_COLOR)
        if speaker_id == "player":
            player = self._bundle.characters.get("player")
            color = player.color if player else DEFAULT_SPEAKER_COLOR
            return Speaker(id=speaker_id, name=PLAYER_LABEL, color=color)

        character = self._bundle.characters.get(speaker_id)
        if character is None:
            logger.debug("unknown speaker %r, showing raw id", speaker_id)
            return Speaker(id=speaker_id, name=speaker_id, color=DEFAULT_SPEAKER_COLOR)

        sprite = character.default_sprite
        if emotion and emotion in character.sprites:
            sprite = character.sprites[emotion]
        return Speaker(
            id=character.id, name=character.name,
            color=character.color, sprite=sprite,
        )
