"""Scene graph navigation: which hotspots are offered, and what clicking does.

`visible_hotspots` is the single filter both the engine and the presentation
layer use, so a hotspot that is not offered can never be activated.
"""

from __future__ import annotations

from collections.abc import Collection
from typing import Literal, Union

from pydantic import BaseModel

from wayfarer.conditions import evaluate
from wayfarer.content import ContentBundle
from wayfarer.errors import ContentReferenceError, InvalidHotspot
from wayfarer.models import Hotspot, Scene, spot_key


# ---------------------------------------------------------------------------
# Transitions produced by a hotspot click
# ---------------------------------------------------------------------------

class DialogTransition(BaseModel):
    kind: Literal["start_dialog"] = "start_dialog"
    dialog_id: str


class SceneTransition(BaseModel):
    kind: Literal["change_scene"] = "change_scene"
    scene_id: str


class ItemPickup(BaseModel):
    kind: Literal["item_pickup"] = "item_pickup"
    item_id: str


class RunAction(BaseModel):
    kind: Literal["run_action"] = "run_action"
    action_id: str


Transition = Union[DialogTransition, SceneTransition, ItemPickup, RunAction]


class SceneNavigator:
    def __init__(self, bundle: ContentBundle) -> None:
        self._bundle = bundle

    def is_visible(
        self,
        scene: Scene,
        hotspot: Hotspot,
        flags: Collection[str],
        visited: Collection[str] = (),
    ) -> bool:
        if not evaluate(hotspot.condition, flags):
            return False
        # Item hotspots are consumed by their first pickup.
        if hotspot.kind == "item" and spot_key(scene.id, hotspot.id) in visited:
            return False
        return True

    def visible_hotspots(
        self,
        scene_id: str,
        flags: Collection[str],
        visited: Collection[str] = (),
    ) -> list[Hotspot]:
        scene = self._bundle.scene(scene_id)
        present = set(flags)
        seen = set(visited)
        return [h for h in scene.hotspots if self.is_visible(scene, h, present, seen)]

    def find_hotspot(
        self,
        scene_id: str,
        hotspot_id: str,
        flags: Collection[str],
        visited: Collection[str] = (),
    ) -> Hotspot:
        """Look up a hotspot the player may click right now."""
        scene = self._bundle.scene(scene_id)
        hotspot = scene.hotspot(hotspot_id)
        if hotspot is None:
            raise InvalidHotspot(f"Scene {scene_id!r} has no hotspot {hotspot_id!r}")
        if not self.is_visible(scene, hotspot, set(flags), set(visited)):
            raise InvalidHotspot(f"Hotspot {hotspot_id!r} is not available")
        return hotspot

    def on_hotspot(self, hotspot: Hotspot, flags: Collection[str]) -> Transition:
        """Resolve a click into the next engine transition.

        Raises InvalidHotspot if the hotspot's condition does not hold and
        ContentReferenceError if its target does not exist.
        """
        if not evaluate(hotspot.condition, flags):
            raise InvalidHotspot(f"Hotspot {hotspot.id!r} is locked")

        target = hotspot.target_id
        if hotspot.kind == "dialog":
            self._bundle.dialog(target)
            return DialogTransition(dialog_id=target)
        if hotspot.kind == "scene":
            self._bundle.scene(target)
            return SceneTransition(scene_id=target)
        if hotspot.kind == "item":
            self._bundle.item(target)
            return ItemPickup(item_id=target)
        if hotspot.kind == "action":
            self._bundle.action(target)
            return RunAction(action_id=target)
        raise ContentReferenceError(f"Hotspot {hotspot.id!r} has unknown kind {hotspot.kind!r}")
