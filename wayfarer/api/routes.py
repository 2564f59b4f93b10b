"""FastAPI endpoints under /api.

Endpoint groups: health, settings, sessions (one live engine each, held in
memory on app.state) and stored saves. Engine errors are part of the Outcome
body; HTTP errors are reserved for unknown sessions and malformed requests.
"""

import logging
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import TypeAdapter, ValidationError

from wayfarer.config import ConfigError, update_config
from wayfarer.engine import NarrativeEngine
from wayfarer.errors import CorruptSave, StorageUnavailable
from wayfarer.intents import Intent, LoadGame, NewGame

from .models import CreateSession, DispatchResult, SessionCreated

logger = logging.getLogger(__name__)

router = APIRouter()

_intent_adapter: TypeAdapter = TypeAdapter(Intent)

# Anything else that stops a session from starting is a content bug.
_START_FAILURE_STATUS = {CorruptSave.kind: 404, StorageUnavailable.kind: 503}


def _engine(request: Request, session_id: str) -> NarrativeEngine:
    engine = request.app.state.sessions.get(session_id)
    if engine is None:
        raise HTTPException(404, "Session not found")
    return engine


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


# ── Settings ─────────────────────────────────────────────


@router.get("/settings")
async def get_settings(request: Request):
    """Current settings. The API key is never echoed back."""
    return request.app.state.settings.model_dump(exclude={"api_key"})


@router.patch("/settings")
async def patch_settings(request: Request, body: dict):
    """Update stored settings (partial merge). Applies to new sessions."""
    settings = request.app.state.settings
    try:
        updated = update_config(body, settings.data_dir)
    except ConfigError as e:
        raise HTTPException(422, str(e))
    request.app.state.settings = updated
    return updated.model_dump(exclude={"api_key"})


# ── Sessions ─────────────────────────────────────────────


@router.post("/sessions", status_code=201, response_model=SessionCreated)
async def create_session(request: Request, body: CreateSession):
    """Start a session: a new game, or a stored save when save_id is given."""
    state = request.app.state
    engine: NarrativeEngine = state.engine_factory(body.player_name)
    if body.save_id:
        outcome = await engine.dispatch(LoadGame(save_id=body.save_id))
    else:
        outcome = await engine.dispatch(NewGame(player_name=body.player_name))
    if not outcome.ok:
        engine.close()
        status = _START_FAILURE_STATUS.get(outcome.error.kind, 500)
        if status == 500:
            logger.error("session start failed: %s: %s", outcome.error.kind, outcome.error.message)
        raise HTTPException(status, outcome.error.message)

    session_id = uuid.uuid4().hex
    state.sessions[session_id] = engine
    logger.info("session %s started save=%s", session_id, engine.save_id)
    return SessionCreated(session_id=session_id, outcome=outcome, view=engine.view())


@router.get("/sessions/{session_id}")
async def get_session(request: Request, session_id: str):
    """Current read-only view of a session."""
    return _engine(request, session_id).view()


@router.post("/sessions/{session_id}/intents", response_model=DispatchResult)
async def dispatch_intent(request: Request, session_id: str, body: dict[str, Any]):
    """Dispatch one intent. Rejected intents come back with ok=false."""
    engine = _engine(request, session_id)
    try:
        intent = _intent_adapter.validate_python(body)
    except ValidationError as e:
        raise HTTPException(422, f"Invalid intent: {e}")
    outcome = await engine.dispatch(intent)
    return DispatchResult(outcome=outcome, view=engine.view())


@router.delete("/sessions/{session_id}")
async def close_session(request: Request, session_id: str):
    """Drop a session. Progress is kept only if it was saved."""
    engine = _engine(request, session_id)
    engine.close()
    del request.app.state.sessions[session_id]
    return {"ok": True}


# ── Saves ────────────────────────────────────────────────


@router.get("/saves")
async def list_saves(request: Request):
    """Stored saves, most recently updated first."""
    try:
        return await request.app.state.saves.list_saves()
    except StorageUnavailable as e:
        raise HTTPException(503, str(e))


@router.delete("/saves/{save_id}")
async def delete_save(request: Request, save_id: str):
    """Delete a stored save."""
    try:
        await request.app.state.saves.delete(save_id)
    except StorageUnavailable as e:
        raise HTTPException(503, str(e))
    return {"ok": True}
