"""Engine state owned exclusively by NarrativeEngine.

`save` is the durable part (what a snapshot captures); the rest is session
state that only lives as long as the engine: the dialog cursor, the reveal
counter, and any pending or failed content-generation request.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from wayfarer.generation import GenerationRequest
from wayfarer.intents import Mode
from wayfarer.models import DialogNode, GameSave


class EngineState(BaseModel):
    save: GameSave
    mode: Mode = "exploring"
    dialog_id: str | None = None
    reveal_id: int = 0
    generated: dict[str, DialogNode] = Field(default_factory=dict)  # only the node on screen
    request: GenerationRequest | None = None
    request_timeout: float | None = None
    generation_error: str | None = None

    @property
    def in_dialog(self) -> bool:
        return self.mode != "exploring"
