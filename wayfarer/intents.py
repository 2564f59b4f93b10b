"""Engine boundary types: intents in, outcomes/events/views out.

Intents are one pydantic model per variant, discriminated on `type`, so an
intent can arrive as JSON (API body) or be built directly in Python. The
engine handles them in one transition function; an unknown variant is a
programming error, not a runtime condition.

Internal messages (reveal finished, generation result) use the same shape but
are not part of the public `Intent` union — only the engine posts them.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from wayfarer.dialog import Speaker
from wayfarer.errors import EngineError
from wayfarer.models import DialogNode, HotspotKind, Memory, Phase

# ---------------------------------------------------------------------------
# Public intents
# ---------------------------------------------------------------------------


class NewGame(BaseModel):
    type: Literal["new_game"] = "new_game"
    player_name: str = ""


class StartDialog(BaseModel):
    type: Literal["start_dialog"] = "start_dialog"
    dialog_id: str


class Advance(BaseModel):
    type: Literal["advance"] = "advance"


class MakeChoice(BaseModel):
    type: Literal["make_choice"] = "make_choice"
    choice_id: str


class ChangeScene(BaseModel):
    type: Literal["change_scene"] = "change_scene"
    scene_id: str


class ClickHotspot(BaseModel):
    type: Literal["click_hotspot"] = "click_hotspot"
    hotspot_id: str


class CompleteTypewriter(BaseModel):
    type: Literal["complete_typewriter"] = "complete_typewriter"


class RequestDialog(BaseModel):
    """Ask the generation collaborator for a fresh dialog line."""

    type: Literal["request_dialog"] = "request_dialog"
    speaker: str = "narrator"
    hint: str = ""
    timeout: float | None = Field(default=None, gt=0)


class RetryGeneration(BaseModel):
    type: Literal["retry_generation"] = "retry_generation"


class SaveGame(BaseModel):
    type: Literal["save"] = "save"


class LoadGame(BaseModel):
    type: Literal["load"] = "load"
    save_id: str


Intent = Annotated[
    Union[
        NewGame, StartDialog, Advance, MakeChoice, ChangeScene, ClickHotspot,
        CompleteTypewriter, RequestDialog, RetryGeneration, SaveGame, LoadGame,
    ],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Internal messages
# ---------------------------------------------------------------------------

class RevealFinished(BaseModel):
    type: Literal["reveal_finished"] = "reveal_finished"
    reveal_id: int


class GenerationReceived(BaseModel):
    type: Literal["generation_received"] = "generation_received"
    request_id: str
    node: DialogNode


class GenerationErrored(BaseModel):
    type: Literal["generation_errored"] = "generation_errored"
    request_id: str
    kind: str
    message: str


# ---------------------------------------------------------------------------
# Read-only projection for the presentation layer
# ---------------------------------------------------------------------------

Mode = Literal[
    "exploring",
    "typing",
    "complete_no_choices",
    "complete_with_choices",
    "loading",
    "generation_failed",
]

DIALOG_MODES: frozenset[str] = frozenset({
    "typing", "complete_no_choices", "complete_with_choices",
    "loading", "generation_failed",
})


class SceneView(BaseModel):
    id: str
    name: str
    description: str
    background: str
    phase: Phase


class HotspotView(BaseModel):
    id: str
    label: str
    kind: HotspotKind
    x: float
    y: float
    width: float
    height: float
    highlighted: bool


class ChoiceView(BaseModel):
    id: str
    text: str


class DialogView(BaseModel):
    node_id: str | None = None
    speaker: Speaker | None = None
    emotion: str | None = None
    text: str = ""
    revealed: str = ""
    complete: bool = False
    choices: list[ChoiceView] = Field(default_factory=list)
    generating: bool = False
    error: str | None = None


class EngineView(BaseModel):
    save_id: str
    player_name: str
    mode: Mode
    phase: Phase
    phase_step: int  # 1-based position of `phase`, for the HUD
    phase_count: int
    scene: SceneView
    hotspots: list[HotspotView]  # empty unless exploring
    dialog: DialogView | None
    flags: list[str]
    inventory: dict[str, int]
    memories: list[Memory]
    achievements: list[str]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

EventType = Literal[
    "game_started",
    "game_loaded",
    "scene_changed",
    "phase_changed",
    "dialog_started",
    "dialog_advanced",
    "dialog_ended",
    "reveal_completed",
    "choice_made",
    "flag_set",
    "item_added",
    "item_removed",
    "memory_added",
    "achievement_unlocked",
    "spot_visited",
    "generation_started",
    "generation_failed",
    "save_written",
]


class Event(BaseModel):
    """One discrete, observable state transition and the view right after it."""

    type: EventType
    payload: dict[str, Any] = Field(default_factory=dict)
    view: EngineView


class ErrorInfo(BaseModel):
    kind: str
    message: str


class Outcome(BaseModel):
    ok: bool = True
    error: ErrorInfo | None = None
    events: list[Event] = Field(default_factory=list)

    @classmethod
    def failure(cls, exc: EngineError) -> Outcome:
        return cls(ok=False, error=ErrorInfo(kind=exc.kind, message=str(exc)))

    @property
    def event_types(self) -> list[str]:
        return [e.type for e in self.events]
