"""Core domain models.

Content (scenes, dialog nodes, characters, items, actions) and progress (the
GameSave) are pydantic models so that bundle files and stored snapshots are
validated at every data boundary. Content models are frozen: a loaded bundle
is never mutated during play.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator

from wayfarer.conditions import parse_condition

Phase = Literal[
    "planning",
    "booking",
    "departure",
    "traveling",
    "destination",
    "return",
    "home",
]

PHASE_ORDER: tuple[Phase, ...] = (
    "planning",
    "booking",
    "departure",
    "traveling",
    "destination",
    "return",
    "home",
)


def phase_index(phase: Phase) -> int:
    return PHASE_ORDER.index(phase)


def later_phase(current: Phase, target: Phase) -> Phase:
    """Phases never move backwards within a playthrough."""
    return target if phase_index(target) > phase_index(current) else current


def _check_condition(value: str) -> str:
    parse_condition(value)
    return value


ConditionExpr = Annotated[str, AfterValidator(_check_condition)]


class _Content(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------

class MemoryTemplate(_Content):
    """A memory as authored in content; stamped into a Memory when collected."""

    id: str
    title: str
    description: str = ""
    image: str = ""


class SetFlag(_Content):
    type: Literal["set_flag"] = "set_flag"
    flag: str


class AddItem(_Content):
    type: Literal["add_item"] = "add_item"
    item_id: str
    quantity: int = Field(default=1, ge=1)


class RemoveItem(_Content):
    """Takes up to `quantity` of an item away; the entry goes when none are left."""

    type: Literal["remove_item"] = "remove_item"
    item_id: str
    quantity: int = Field(default=1, ge=1)


class AddMemory(_Content):
    type: Literal["add_memory"] = "add_memory"
    memory: MemoryTemplate


class UnlockAchievement(_Content):
    type: Literal["unlock_achievement"] = "unlock_achievement"
    achievement_id: str


class ChangeSceneEffect(_Content):
    type: Literal["change_scene"] = "change_scene"
    scene_id: str


class ChangePhase(_Content):
    type: Literal["change_phase"] = "change_phase"
    phase: Phase


Effect = Annotated[
    Union[
        SetFlag,
        AddItem,
        RemoveItem,
        AddMemory,
        UnlockAchievement,
        ChangeSceneEffect,
        ChangePhase,
    ],
    Field(discriminator="type"),
]


def _restrict_effects(effects: list, allowed: set[str], owner: str) -> list:
    for effect in effects:
        if effect.type not in allowed:
            raise ValueError(
                f"{owner} may not carry {effect.type!r} effects "
                f"(allowed: {', '.join(sorted(allowed))})"
            )
    return effects


# ---------------------------------------------------------------------------
# Dialog
# ---------------------------------------------------------------------------

class DialogChoice(_Content):
    id: str
    text: str
    next_id: str | None = None
    condition: ConditionExpr | None = None
    effects: list[Effect] = Field(default_factory=list)

    @field_validator("effects")
    @classmethod
    def _one_scene_change(cls, effects: list) -> list:
        if sum(1 for e in effects if e.type == "change_scene") > 1:
            raise ValueError("A choice may change scene at most once")
        return effects

    @property
    def scene_change(self) -> str | None:
        for effect in self.effects:
            if isinstance(effect, ChangeSceneEffect):
                return effect.scene_id
        return None


class DialogNode(_Content):
    """One unit of dialog. No choices means `advance` moves on to `next`."""

    id: str
    speaker: str  # "narrator" | "player" | <character_id>
    text: str
    emotion: str | None = None
    choices: list[DialogChoice] = Field(default_factory=list)
    next: str | None = None

    @field_validator("choices")
    @classmethod
    def _unique_choice_ids(cls, choices: list[DialogChoice]) -> list[DialogChoice]:
        ids = [c.id for c in choices]
        if len(ids) != len(set(ids)):
            raise ValueError("Choice ids must be unique within a node")
        return choices


# ---------------------------------------------------------------------------
# Characters, items, actions
# ---------------------------------------------------------------------------

CharacterType = Literal["narrator", "player", "npc"]


class Character(_Content):
    id: str
    name: str
    type: CharacterType = "npc"
    description: str = ""
    sprites: dict[str, str] = Field(default_factory=dict)  # emotion -> image
    default_sprite: str | None = None
    color: str = "#ffffff"


class Item(_Content):
    id: str
    name: str
    description: str = ""


class Achievement(_Content):
    id: str
    name: str
    description: str = ""
    icon: str = ""
    hidden: bool = False  # not listed until unlocked


class Action(_Content):
    """What an `action` hotspot runs: item/memory rewards, then an optional dialog."""

    id: str
    label: str = ""
    effects: list[Effect] = Field(default_factory=list)
    dialog_id: str | None = None

    @field_validator("effects")
    @classmethod
    def _no_flags(cls, effects: list) -> list:
        return _restrict_effects(effects, {"add_item", "add_memory"}, "Action")


# ---------------------------------------------------------------------------
# Scenes
# ---------------------------------------------------------------------------

HotspotKind = Literal["dialog", "scene", "item", "action"]


class Hotspot(_Content):
    id: str
    x: float = Field(ge=0, le=100)
    y: float = Field(ge=0, le=100)
    width: float = Field(ge=0, le=100)
    height: float = Field(ge=0, le=100)
    label: str
    kind: HotspotKind
    target_id: str
    condition: ConditionExpr | None = None
    highlighted: bool = False  # presentation hint only

    @model_validator(mode="after")
    def _inside_area(self) -> Hotspot:
        if self.x + self.width > 100 or self.y + self.height > 100:
            raise ValueError(f"Hotspot {self.id!r} extends past the 0-100 area")
        return self


class Scene(_Content):
    id: str
    phase: Phase
    name: str
    description: str = ""
    background: str = ""
    hotspots: list[Hotspot] = Field(default_factory=list)
    entry_dialog_id: str | None = None
    entry_effects: list[Effect] = Field(default_factory=list)

    @field_validator("hotspots")
    @classmethod
    def _unique_hotspot_ids(cls, hotspots: list[Hotspot]) -> list[Hotspot]:
        ids = [h.id for h in hotspots]
        if len(ids) != len(set(ids)):
            raise ValueError("Hotspot ids must be unique within a scene")
        return hotspots

    @field_validator("entry_effects")
    @classmethod
    def _idempotent_entry(cls, effects: list) -> list:
        # Entry effects re-run on every visit, so they must be idempotent.
        return _restrict_effects(effects, {"set_flag", "add_memory", "unlock_achievement"}, "Scene entry")

    def hotspot(self, hotspot_id: str) -> Hotspot | None:
        for h in self.hotspots:
            if h.id == hotspot_id:
                return h
        return None


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

class Memory(BaseModel):
    """A collected memory; the save's memory log is append-only."""

    id: str
    title: str
    description: str = ""
    image: str = ""
    scene_id: str | None = None
    phase: Phase | None = None
    acquired_at: datetime | None = None


SAVE_VERSION = 1


class GameSave(BaseModel):
    """Durable narrative progress for one session."""

    id: str
    version: int = SAVE_VERSION
    player_name: str = ""
    created_at: datetime
    updated_at: datetime
    current_phase: Phase
    current_scene_id: str
    current_dialog_id: str | None = None
    flags: list[str] = Field(default_factory=list)  # ordered, duplicate-free
    inventory: dict[str, int] = Field(default_factory=dict)
    memories: list[Memory] = Field(default_factory=list)
    visited_spots: list[str] = Field(default_factory=list)  # "<scene_id>:<hotspot_id>"
    achievements: list[str] = Field(default_factory=list)  # unlock order, append-only

    @field_validator("flags", "achievements")
    @classmethod
    def _dedupe(cls, values: list[str]) -> list[str]:
        return list(dict.fromkeys(values))

    @field_validator("inventory")
    @classmethod
    def _positive_quantities(cls, inventory: dict[str, int]) -> dict[str, int]:
        if any(q < 1 for q in inventory.values()):
            raise ValueError("Inventory quantities must be positive")
        return inventory


def spot_key(scene_id: str, hotspot_id: str) -> str:
    return f"{scene_id}:{hotspot_id}"
