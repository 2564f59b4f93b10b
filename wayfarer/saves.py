"""Save lifecycle: snapshot, restore, and storage round trips.

A save captures only what is needed to rebuild the Exploring state in the
current scene. Mid-dialog position is deliberately not durable: `snapshot`
drops the dialog cursor and `restore` always resumes in Exploring.

Storage layout (through any SaveStore):

    {prefix}:save:{save_id}   ← GameSave as JSON
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from pydantic import BaseModel, ValidationError

from wayfarer.content import ContentBundle
from wayfarer.errors import CorruptSave, StorageUnavailable
from wayfarer.intents import Event
from wayfarer.models import SAVE_VERSION, GameSave, Phase
from wayfarer.state import EngineState
from wayfarer.storage import SaveStore

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "wayfarer"


# ---------------------------------------------------------------------------
# Pure projections
# ---------------------------------------------------------------------------

def snapshot(state: EngineState) -> GameSave:
    """Project engine state onto its durable part."""
    return state.save.model_copy(update={"current_dialog_id": None}, deep=True)


def restore(bundle: ContentBundle, save: GameSave) -> EngineState:
    """Rebuild Exploring state from a save, or raise CorruptSave."""
    if save.version > SAVE_VERSION:
        raise CorruptSave(
            f"Save {save.id!r} has version {save.version}, newer than supported {SAVE_VERSION}"
        )
    if save.current_scene_id not in bundle.scenes:
        raise CorruptSave(f"Save {save.id!r} references unknown scene {save.current_scene_id!r}")
    return EngineState(save=save.model_copy(update={"current_dialog_id": None}, deep=True))


def new_save(
    bundle: ContentBundle,
    player_name: str = "",
    now: datetime | None = None,
    save_id: str | None = None,
) -> GameSave:
    """A fresh save standing in the bundle's start scene."""
    now = now or datetime.now(timezone.utc)
    scene = bundle.start_scene
    return GameSave(
        id=save_id or uuid.uuid4().hex,
        player_name=player_name,
        created_at=now,
        updated_at=now,
        current_phase=scene.phase,
        current_scene_id=scene.id,
    )


# ---------------------------------------------------------------------------
# Storage round trips
# ---------------------------------------------------------------------------

class SaveSummary(BaseModel):
    """What a save-slot list shows without loading the whole save."""

    id: str
    player_name: str
    current_phase: Phase
    current_scene_id: str
    updated_at: datetime
    memory_count: int

    @classmethod
    def of(cls, save: GameSave) -> SaveSummary:
        return cls(
            id=save.id,
            player_name=save.player_name,
            current_phase=save.current_phase,
            current_scene_id=save.current_scene_id,
            updated_at=save.updated_at,
            memory_count=len(save.memories),
        )


class SaveManager:
    def __init__(self, store: SaveStore, prefix: str = DEFAULT_PREFIX) -> None:
        self._store = store
        self._prefix = f"{prefix}:save:"

    def key(self, save_id: str) -> str:
        return f"{self._prefix}{save_id}"

    async def write(self, save: GameSave) -> None:
        await self._store.set(self.key(save.id), save.model_dump_json())
        logger.info("save written id=%s scene=%s", save.id, save.current_scene_id)

    async def read(self, save_id: str) -> GameSave:
        try:
            raw = await self._store.get(self.key(save_id))
        except UnicodeDecodeError as e:
            raise CorruptSave(f"Save {save_id!r} is not valid UTF-8: {e}") from e
        if raw is None:
            raise CorruptSave(f"No save with id {save_id!r}")
        try:
            return GameSave.model_validate_json(raw)
        except ValidationError as e:
            raise CorruptSave(f"Save {save_id!r} cannot be parsed: {e}") from e

    async def load(self, bundle: ContentBundle, save_id: str) -> EngineState:
        state = restore(bundle, await self.read(save_id))
        logger.info("save loaded id=%s scene=%s", save_id, state.save.current_scene_id)
        return state

    async def list_saves(self) -> list[SaveSummary]:
        """Summaries of every readable save, most recently updated first."""
        summaries: list[SaveSummary] = []
        for key in await self._store.list():
            if not key.startswith(self._prefix):
                continue
            save_id = key[len(self._prefix):]
            try:
                summaries.append(SaveSummary.of(await self.read(save_id)))
            except CorruptSave as e:
                logger.warning("skipping unreadable save %s: %s", save_id, e)
        summaries.sort(key=lambda s: s.updated_at, reverse=True)
        return summaries

    async def delete(self, save_id: str) -> None:
        await self._store.delete(self.key(save_id))
        logger.info("save deleted id=%s", save_id)


# ---------------------------------------------------------------------------
# Autosave
# ---------------------------------------------------------------------------

_NOT_AUTOSAVED = frozenset({"save_written", "game_loaded"})


class Autosaver:
    """Engine listener that persists a snapshot whenever play returns to Exploring.

    Writes are coalesced: while one write is pending, further triggers only
    mark the save dirty, and the snapshot is taken when the write actually
    runs. Storage failures are logged and kept in `last_error`; they never
    reach the engine.
    """

    def __init__(self, manager: SaveManager, source: Callable[[], GameSave]) -> None:
        self._manager = manager
        self._source = source
        self._task: asyncio.Task | None = None
        self._dirty = False
        self.writes = 0
        self.last_error: StorageUnavailable | None = None

    def __call__(self, event: Event) -> None:
        if event.type in _NOT_AUTOSAVED or event.view.mode != "exploring":
            return
        self._dirty = True
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while self._dirty:
            self._dirty = False
            save = self._source()
            try:
                await self._manager.write(save)
            except StorageUnavailable as e:
                logger.warning("autosave failed for %s: %s", save.id, e)
                self.last_error = e
                continue
            self.writes += 1
            self.last_error = None

    async def flush(self) -> None:
        """Wait for the pending write, if any."""
        if self._task is not None:
            await self._task
