"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel

from wayfarer.intents import EngineView, Outcome


class CreateSession(BaseModel):
    player_name: str = ""
    save_id: str | None = None


class SessionCreated(BaseModel):
    session_id: str
    outcome: Outcome
    view: EngineView


class DispatchResult(BaseModel):
    outcome: Outcome
    view: EngineView
