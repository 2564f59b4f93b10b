"""Content bundle: scenes, dialog nodes, characters, items, actions, achievements.

A bundle is loaded once per session and passed by reference into the engine.
Lookups are O(1) by id and the underlying maps are read-only proxies, so no
part of the engine can mutate authored content during play.

Bundle file layout (JSON):

    {
      "title": "...",
      "start_scene_id": "scene_home_planning",
      "scenes":       [Scene, ...],
      "dialogs":      [DialogNode, ...],
      "characters":   [Character, ...],
      "items":        [Item, ...],
      "actions":      [Action, ...],
      "achievements": [Achievement, ...]
    }
"""

from __future__ import annotations

import json
import logging
from collections import deque
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError

from wayfarer.conditions import parse_condition
from wayfarer.errors import ContentError, ContentReferenceError
from wayfarer.models import (
    Achievement,
    Action,
    AddItem,
    ChangeSceneEffect,
    Character,
    DialogNode,
    Item,
    RemoveItem,
    Scene,
    SetFlag,
    UnlockAchievement,
)

logger = logging.getLogger(__name__)

RESERVED_SPEAKERS = frozenset({"narrator", "player"})

_T = TypeVar("_T")


class BundleFile(BaseModel):
    """On-disk shape of a content bundle."""

    title: str = ""
    start_scene_id: str
    scenes: list[Scene]
    dialogs: list[DialogNode] = Field(default_factory=list)
    characters: list[Character] = Field(default_factory=list)
    items: list[Item] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)
    achievements: list[Achievement] = Field(default_factory=list)


def _index(entries: Iterable[_T], what: str) -> Mapping[str, _T]:
    table: dict[str, _T] = {}
    for entry in entries:
        if entry.id in table:  # type: ignore[attr-defined]
            raise ContentError(f"Duplicate {what} id {entry.id!r}")  # type: ignore[attr-defined]
        table[entry.id] = entry  # type: ignore[attr-defined]
    return MappingProxyType(table)


class ContentBundle:
    def __init__(
        self,
        *,
        start_scene_id: str,
        scenes: Iterable[Scene],
        dialogs: Iterable[DialogNode] = (),
        characters: Iterable[Character] = (),
        items: Iterable[Item] = (),
        actions: Iterable[Action] = (),
        achievements: Iterable[Achievement] = (),
        title: str = "",
    ) -> None:
        self.title = title
        self.scenes = _index(scenes, "scene")
        self.dialogs = _index(dialogs, "dialog")
        self.characters = _index(characters, "character")
        self.items = _index(items, "item")
        self.actions = _index(actions, "action")
        self.achievements = _index(achievements, "achievement")
        if start_scene_id not in self.scenes:
            raise ContentError(f"Start scene {start_scene_id!r} is not defined")
        self.start_scene_id = start_scene_id

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentBundle:
        try:
            parsed = BundleFile.model_validate(data)
        except ValidationError as e:
            raise ContentError(f"Invalid content bundle: {e}") from e
        return cls(
            title=parsed.title,
            start_scene_id=parsed.start_scene_id,
            scenes=parsed.scenes,
            dialogs=parsed.dialogs,
            characters=parsed.characters,
            items=parsed.items,
            actions=parsed.actions,
            achievements=parsed.achievements,
        )

    @property
    def start_scene(self) -> Scene:
        return self.scenes[self.start_scene_id]

    # ------------------------------------------------------------------
    # Lookups: a missing id is a content bug, reported as a recoverable error
    # ------------------------------------------------------------------

    def scene(self, scene_id: str) -> Scene:
        try:
            return self.scenes[scene_id]
        except KeyError:
            raise ContentReferenceError(f"Unknown scene {scene_id!r}") from None

    def dialog(self, dialog_id: str) -> DialogNode:
        try:
            return self.dialogs[dialog_id]
        except KeyError:
            raise ContentReferenceError(f"Unknown dialog node {dialog_id!r}") from None

    def item(self, item_id: str) -> Item:
        try:
            return self.items[item_id]
        except KeyError:
            raise ContentReferenceError(f"Unknown item {item_id!r}") from None

    def action(self, action_id: str) -> Action:
        try:
            return self.actions[action_id]
        except KeyError:
            raise ContentReferenceError(f"Unknown action {action_id!r}") from None

    def achievement(self, achievement_id: str) -> Achievement:
        try:
            return self.achievements[achievement_id]
        except KeyError:
            raise ContentReferenceError(f"Unknown achievement {achievement_id!r}") from None


def load_bundle(path: Path) -> ContentBundle:
    """Read and validate a bundle file. Raises ContentError on any problem."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ContentError(f"Cannot read content bundle {path}: {e}") from e
    bundle = ContentBundle.from_dict(data)
    logger.debug(
        "loaded bundle %r scenes=%d dialogs=%d",
        bundle.title, len(bundle.scenes), len(bundle.dialogs),
    )
    return bundle


# ---------------------------------------------------------------------------
# Authoring linter
# ---------------------------------------------------------------------------

def lint_bundle(bundle: ContentBundle) -> list[str]:
    """Report authoring problems that load-time validation cannot catch.

    Walks the scene/dialog graph from the start scene ignoring every
    condition, collects the flags that reachable choices and scene entries can
    set, then checks references and gates against that. An empty list means
    the bundle is clean.
    """
    problems: list[str] = []
    reachable_scenes: set[str] = set()
    reachable_dialogs: set[str] = set()
    producible: set[str] = set()
    gates: list[tuple[str, str]] = []  # (where, condition)

    scene_queue: deque[str] = deque([bundle.start_scene_id])
    dialog_queue: deque[str] = deque()

    def _reach_dialog(dialog_id: str | None, where: str) -> None:
        if dialog_id is None:
            return
        if dialog_id not in bundle.dialogs:
            problems.append(f"{where}: unknown dialog node {dialog_id!r}")
            return
        if dialog_id not in reachable_dialogs:
            reachable_dialogs.add(dialog_id)
            dialog_queue.append(dialog_id)

    def _reach_scene(scene_id: str, where: str) -> None:
        if scene_id not in bundle.scenes:
            problems.append(f"{where}: unknown scene {scene_id!r}")
            return
        if scene_id not in reachable_scenes:
            scene_queue.append(scene_id)

    def _walk_effects(effects: Iterable[Any], where: str) -> None:
        for effect in effects:
            if isinstance(effect, SetFlag):
                producible.add(effect.flag)
            elif isinstance(effect, ChangeSceneEffect):
                _reach_scene(effect.scene_id, where)
            elif isinstance(effect, (AddItem, RemoveItem)) and effect.item_id not in bundle.items:
                problems.append(f"{where}: unknown item {effect.item_id!r}")
            elif isinstance(effect, UnlockAchievement) \
                    and effect.achievement_id not in bundle.achievements:
                problems.append(f"{where}: unknown achievement {effect.achievement_id!r}")

    while scene_queue or dialog_queue:
        while scene_queue:
            scene_id = scene_queue.popleft()
            if scene_id in reachable_scenes:
                continue
            reachable_scenes.add(scene_id)
            scene = bundle.scenes[scene_id]
            where = f"scene {scene_id}"
            _walk_effects(scene.entry_effects, where)
            _reach_dialog(scene.entry_dialog_id, f"{where} entry")
            for hotspot in scene.hotspots:
                spot = f"{where} hotspot {hotspot.id}"
                if hotspot.condition:
                    gates.append((spot, hotspot.condition))
                if hotspot.kind == "dialog":
                    _reach_dialog(hotspot.target_id, spot)
                elif hotspot.kind == "scene":
                    _reach_scene(hotspot.target_id, spot)
                elif hotspot.kind == "item":
                    if hotspot.target_id not in bundle.items:
                        problems.append(f"{spot}: unknown item {hotspot.target_id!r}")
                elif hotspot.kind == "action":
                    action = bundle.actions.get(hotspot.target_id)
                    if action is None:
                        problems.append(f"{spot}: unknown action {hotspot.target_id!r}")
                    else:
                        _walk_effects(action.effects, f"action {action.id}")
                        _reach_dialog(action.dialog_id, f"action {action.id}")

        while dialog_queue:
            node = bundle.dialogs[dialog_queue.popleft()]
            where = f"dialog {node.id}"
            if node.speaker not in RESERVED_SPEAKERS and node.speaker not in bundle.characters:
                problems.append(f"{where}: unknown speaker {node.speaker!r}")
            _reach_dialog(node.next, where)
            for choice in node.choices:
                spot = f"{where} choice {choice.id}"
                if choice.condition:
                    gates.append((spot, choice.condition))
                _walk_effects(choice.effects, spot)
                _reach_dialog(choice.next_id, spot)

    for scene_id in bundle.scenes:
        if scene_id not in reachable_scenes:
            problems.append(f"scene {scene_id}: unreachable from start scene")

    for where, condition in gates:
        clauses = parse_condition(condition)
        if any(clause <= producible for clause in clauses):
            continue
        missing = sorted(set().union(*clauses) - producible)
        if missing:
            problems.append(
                f"{where}: condition {condition!r} needs flags nothing reachable sets: "
                + ", ".join(missing)
            )

    return problems
