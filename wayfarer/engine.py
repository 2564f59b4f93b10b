"""Narrative engine — the single state machine behind a play session.

Every intent goes through one transition function:

    dispatch(intent)
      → copy current EngineState
      → handler mutates the copy, recording one Event per discrete step
      → commit (swap the copy in), stamp updated_at
      → sync side channels: typewriter reveal, generation task
      → notify listeners

A handler that raises an EngineError never reaches commit, so a rejected
intent leaves the state exactly as it was. Nothing outside this class
mutates EngineState; collaborators see either a view or a snapshot.

Asynchronous sources (typewriter ticks, generation results) post internal
messages back into the same transition function instead of touching state
from their callbacks.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import deque
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from wayfarer.content import ContentBundle
from wayfarer.dialog import DialogResolver
from wayfarer.errors import (
    EngineError,
    GenerationFailed,
    GenerationTimeout,
    IllegalTransition,
    InvalidChoice,
    StorageUnavailable,
)
from wayfarer.generation import DialogGenerator, GenerationRequest, generated_node_id
from wayfarer.intents import (
    Advance,
    ChangeScene,
    ChoiceView,
    ClickHotspot,
    CompleteTypewriter,
    DialogView,
    EngineView,
    Event,
    EventType,
    GenerationErrored,
    GenerationReceived,
    HotspotView,
    Intent,
    LoadGame,
    MakeChoice,
    NewGame,
    Outcome,
    RequestDialog,
    RetryGeneration,
    RevealFinished,
    SaveGame,
    SceneView,
    StartDialog,
)
from wayfarer.models import (
    PHASE_ORDER,
    AddItem,
    AddMemory,
    ChangePhase,
    ChangeSceneEffect,
    DialogNode,
    GameSave,
    Memory,
    Phase,
    RemoveItem,
    Scene,
    SetFlag,
    UnlockAchievement,
    later_phase,
    phase_index,
    spot_key,
)
from wayfarer.navigator import (
    DialogTransition,
    ItemPickup,
    RunAction,
    SceneNavigator,
    SceneTransition,
)
from wayfarer.saves import SaveManager, new_save, restore
from wayfarer.saves import snapshot as take_snapshot
from wayfarer.state import EngineState
from wayfarer.typewriter import Typewriter

logger = logging.getLogger(__name__)

Listener = Callable[[Event], None]
Clock = Callable[[], datetime]

DEFAULT_GENERATION_TIMEOUT = 30.0
COMPLETE_MODES = frozenset({"complete_no_choices", "complete_with_choices"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Work:
    """A working copy of engine state plus the events recorded against it."""

    def __init__(self, engine: NarrativeEngine, state: EngineState) -> None:
        self._engine = engine
        self.state = state
        self.events: list[Event] = []

    def emit(self, type: EventType, **payload: Any) -> None:
        view = self._engine._project(self.state)
        self.events.append(Event(type=type, payload=payload, view=view))


class NarrativeEngine:
    """Orchestrates scenes, dialog, typewriter reveal and saves for one session.

    Args:
        bundle:     Immutable content, shared by reference.
        save:       Progress to resume from. Restored into Exploring; raises
                    CorruptSave if it references unknown content.
        typewriter: Reveal scheduler. Defaults to one on the running loop.
        clock:      Source of timestamps for saves and memories.
        generator:  Content-generation collaborator, optional.
        saves:      Save manager for the save/load intents, optional.
        generation_timeout: Default deadline for generation requests.
    """

    def __init__(
        self,
        bundle: ContentBundle,
        save: GameSave,
        *,
        typewriter: Typewriter | None = None,
        clock: Clock | None = None,
        generator: DialogGenerator | None = None,
        saves: SaveManager | None = None,
        generation_timeout: float = DEFAULT_GENERATION_TIMEOUT,
    ) -> None:
        self._bundle = bundle
        self._resolver = DialogResolver(bundle)
        self._navigator = SceneNavigator(bundle)
        self._state = restore(bundle, save)
        self._typewriter = typewriter or Typewriter()
        self._clock = clock or _utcnow
        self._generator = generator
        self._saves = saves
        self._generation_timeout = generation_timeout

        self._lock = asyncio.Lock()
        self._listeners: list[Listener] = []
        self._inbox: deque = deque()
        self._busy = False
        self._transitioning = False
        self._generation_task: asyncio.Task | None = None

        self._handlers: dict[type, Callable[[_Work, Any], None]] = {
            NewGame: self._on_new_game,
            StartDialog: self._on_start_dialog,
            Advance: self._on_advance,
            MakeChoice: self._on_make_choice,
            ChangeScene: self._on_change_scene,
            ClickHotspot: self._on_click_hotspot,
            CompleteTypewriter: self._on_complete_typewriter,
            RequestDialog: self._on_request_dialog,
            RetryGeneration: self._on_retry_generation,
            RevealFinished: self._on_reveal_finished,
            GenerationReceived: self._on_generation_received,
            GenerationErrored: self._on_generation_errored,
        }

    @classmethod
    def new_game(
        cls, bundle: ContentBundle, player_name: str = "", **kwargs: Any
    ) -> NarrativeEngine:
        clock: Clock = kwargs.get("clock") or _utcnow
        return cls(bundle, new_save(bundle, player_name, clock()), **kwargs)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def bundle(self) -> ContentBundle:
        return self._bundle

    @property
    def save_id(self) -> str:
        return self._state.save.id

    @property
    def mode(self) -> str:
        return self._state.mode

    def view(self) -> EngineView:
        """Read-only projection for the presentation layer."""
        if self._transitioning:
            raise RuntimeError("Engine state read while a transition is being committed")
        revealed = self._typewriter.revealed if self._state.mode == "typing" else None
        return self._project(self._state, revealed)

    def snapshot(self) -> GameSave:
        return take_snapshot(self._state)

    def on(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for committed events. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    async def dispatch(self, intent: Intent) -> Outcome:
        """Process one intent to completion. Engine errors come back in the Outcome."""
        async with self._lock:
            logger.debug("dispatch %s mode=%s", intent.type, self._state.mode)
            if isinstance(intent, SaveGame):
                return await self._save()
            if isinstance(intent, LoadGame):
                return await self._load(intent.save_id)
            return self._run(intent)

    async def drain(self) -> None:
        """Wait for an in-flight generation request to settle."""
        task = self._generation_task
        if task is not None:
            await asyncio.wait({task})

    def close(self) -> None:
        self._typewriter.cancel()
        self._cancel_generation()
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Transition machinery
    # ------------------------------------------------------------------

    def _run(self, message: Any) -> Outcome:
        self._busy = True
        try:
            outcome = self._apply(message)
            while self._inbox:
                self._apply(self._inbox.popleft())
        finally:
            self._busy = False
        return outcome

    def _post(self, message: Any) -> None:
        """Deliver an internal message; queued if a transition is in progress."""
        if self._busy:
            self._inbox.append(message)
            return
        self._run(message)

    def _apply(self, message: Any) -> Outcome:
        work = _Work(self, self._state.model_copy(deep=True))
        self._transitioning = True
        try:
            self._handlers[type(message)](work, message)
        except EngineError as e:
            logger.debug("%s rejected: %s: %s", message.type, e.kind, e)
            return Outcome.failure(e)
        finally:
            self._transitioning = False
        if not work.events:
            return Outcome()
        return self._commit(work)

    def _commit(self, work: _Work) -> Outcome:
        old = self._state
        self._transitioning = True
        try:
            work.state.save.updated_at = self._clock()
            self._state = work.state
        finally:
            self._transitioning = False
        logger.debug(
            "commit %s -> %s events=%s",
            old.mode, self._state.mode, [e.type for e in work.events],
        )
        self._sync_typewriter(old, self._state)
        self._sync_generation(old, self._state)
        self._notify(work.events)
        return Outcome(events=work.events)

    def _notify(self, events: list[Event]) -> None:
        for event in events:
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception:
                    logger.warning("listener failed on %s", event.type, exc_info=True)

    def _sync_typewriter(self, old: EngineState, new: EngineState) -> None:
        if new.mode == "typing":
            if old.mode != "typing" or old.reveal_id != new.reveal_id:
                node = self._resolver.node(new.dialog_id, new.generated)
                reveal_id = new.reveal_id
                self._typewriter.start(
                    node.text, lambda: self._post(RevealFinished(reveal_id=reveal_id))
                )
            return
        if (
            old.mode == "typing"
            and new.mode in COMPLETE_MODES
            and old.reveal_id == new.reveal_id
        ):
            self._typewriter.complete()
        else:
            self._typewriter.cancel()

    def _sync_generation(self, old: EngineState, new: EngineState) -> None:
        if new.mode != "loading" or new.request is None:
            self._cancel_generation()
            return
        if old.mode == "loading" and old.request is not None \
                and old.request.request_id == new.request.request_id:
            return
        self._cancel_generation()
        timeout = new.request_timeout or self._generation_timeout
        self._generation_task = asyncio.get_running_loop().create_task(
            self._generate(new.request, timeout)
        )

    def _cancel_generation(self) -> None:
        task, self._generation_task = self._generation_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _generate(self, request: GenerationRequest, timeout: float) -> None:
        message: GenerationReceived | GenerationErrored
        try:
            node = await asyncio.wait_for(self._generator(request), timeout)
        except asyncio.TimeoutError:
            error = GenerationTimeout(f"Content generation timed out after {timeout}s")
            message = GenerationErrored(
                request_id=request.request_id, kind=error.kind, message=str(error)
            )
        except EngineError as e:
            message = GenerationErrored(
                request_id=request.request_id, kind=e.kind, message=str(e)
            )
        except Exception as e:
            logger.warning("generator raised unexpectedly", exc_info=True)
            message = GenerationErrored(
                request_id=request.request_id,
                kind=GenerationFailed.kind,
                message=f"Content generation failed: {e}",
            )
        else:
            message = GenerationReceived(request_id=request.request_id, node=node)
        if self._generation_task is asyncio.current_task():
            self._generation_task = None
        self._post(message)

    # ------------------------------------------------------------------
    # Save / load
    # ------------------------------------------------------------------

    async def _save(self) -> Outcome:
        if self._saves is None:
            return Outcome.failure(StorageUnavailable("No save store is configured"))
        save = self.snapshot()
        try:
            await self._saves.write(save)
        except EngineError as e:
            logger.warning("save %s failed: %s", save.id, e)
            return Outcome.failure(e)
        event = Event(type="save_written", payload={"save_id": save.id}, view=self.view())
        self._notify([event])
        return Outcome(events=[event])

    async def _load(self, save_id: str) -> Outcome:
        if self._saves is None:
            return Outcome.failure(StorageUnavailable("No save store is configured"))
        try:
            state = await self._saves.load(self._bundle, save_id)
        except EngineError as e:
            logger.warning("load %s failed: %s", save_id, e)
            return Outcome.failure(e)
        # Keep reveal ids increasing so callbacks from the old session stay stale.
        state.reveal_id = self._state.reveal_id + 1
        work = _Work(self, state)
        work.emit("game_loaded", save_id=save_id)
        return self._commit(work)

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def _project(self, state: EngineState, revealed: str | None = None) -> EngineView:
        save = state.save
        scene = self._bundle.scene(save.current_scene_id)
        hotspots: list[HotspotView] = []
        if state.mode == "exploring":
            hotspots = [
                HotspotView(
                    id=h.id, label=h.label, kind=h.kind,
                    x=h.x, y=h.y, width=h.width, height=h.height,
                    highlighted=h.highlighted,
                )
                for h in self._navigator.visible_hotspots(
                    scene.id, save.flags, save.visited_spots
                )
            ]
        return EngineView(
            save_id=save.id,
            player_name=save.player_name,
            mode=state.mode,
            phase=save.current_phase,
            phase_step=phase_index(save.current_phase) + 1,
            phase_count=len(PHASE_ORDER),
            scene=SceneView(
                id=scene.id, name=scene.name, description=scene.description,
                background=scene.background, phase=scene.phase,
            ),
            hotspots=hotspots,
            dialog=self._dialog_view(state, revealed) if state.in_dialog else None,
            flags=list(save.flags),
            inventory=dict(save.inventory),
            memories=list(save.memories),
            achievements=list(save.achievements),
        )

    def _dialog_view(self, state: EngineState, revealed: str | None) -> DialogView:
        if state.mode in ("loading", "generation_failed"):
            speaker_id = state.request.speaker if state.request else "narrator"
            return DialogView(
                speaker=self._resolver.resolve_speaker(speaker_id),
                generating=state.mode == "loading",
                error=state.generation_error,
            )

        node = self._resolver.node(state.dialog_id, state.generated)
        complete = state.mode != "typing"
        choices: list[ChoiceView] = []
        if state.mode == "complete_with_choices":
            choices = [
                ChoiceView(id=c.id, text=c.text)
                for c in self._resolver.get_available_choices(
                    node.id, state.save.flags, state.generated
                )
            ]
        return DialogView(
            node_id=node.id,
            speaker=self._resolver.resolve_speaker(node.speaker, node.emotion),
            emotion=node.emotion,
            text=node.text,
            revealed=node.text if complete else (revealed or ""),
            complete=complete,
            choices=choices,
        )

    # ------------------------------------------------------------------
    # Building blocks shared by handlers
    # ------------------------------------------------------------------

    def _current_node(self, state: EngineState) -> DialogNode:
        if state.dialog_id is None:
            raise IllegalTransition("No dialog is active")
        return self._resolver.node(state.dialog_id, state.generated)

    def _show_node(self, work: _Work, node: DialogNode, event: EventType) -> None:
        s = work.state
        s.mode = "typing"
        s.dialog_id = node.id
        s.reveal_id += 1
        s.generated = {node.id: node} if node.id in s.generated else {}
        s.request = None
        s.request_timeout = None
        s.generation_error = None
        s.save.current_dialog_id = node.id
        work.emit(event, dialog_id=node.id, speaker=node.speaker)

    def _start_dialog(self, work: _Work, dialog_id: str) -> None:
        self._show_node(work, self._bundle.dialog(dialog_id), "dialog_started")

    def _end_dialog(self, work: _Work) -> None:
        s = work.state
        ended = s.dialog_id
        s.mode = "exploring"
        s.dialog_id = None
        s.generated = {}
        s.request = None
        s.request_timeout = None
        s.generation_error = None
        s.save.current_dialog_id = None
        work.emit("dialog_ended", dialog_id=ended)

    def _complete_reveal(self, work: _Work) -> None:
        s = work.state
        node = self._current_node(s)
        visible = self._resolver.get_available_choices(node.id, s.save.flags, s.generated)
        s.mode = "complete_with_choices" if visible else "complete_no_choices"
        work.emit("reveal_completed", dialog_id=node.id, choices=[c.id for c in visible])

    def _advance_phase(self, work: _Work, target: Phase) -> None:
        save = work.state.save
        current = save.current_phase
        phase = later_phase(current, target)
        if phase != current:
            save.current_phase = phase
            work.emit("phase_changed", phase=phase, previous=current)

    def _apply_effect(self, work: _Work, effect: Any) -> None:
        save = work.state.save
        if isinstance(effect, SetFlag):
            if effect.flag not in save.flags:
                save.flags.append(effect.flag)
                work.emit("flag_set", flag=effect.flag)
        elif isinstance(effect, AddItem):
            self._bundle.item(effect.item_id)
            total = save.inventory.get(effect.item_id, 0) + effect.quantity
            save.inventory[effect.item_id] = total
            work.emit("item_added", item_id=effect.item_id, quantity=effect.quantity, total=total)
        elif isinstance(effect, RemoveItem):
            self._bundle.item(effect.item_id)
            held = save.inventory.get(effect.item_id, 0)
            if held == 0:
                return
            removed = min(held, effect.quantity)
            if held > removed:
                save.inventory[effect.item_id] = held - removed
            else:
                del save.inventory[effect.item_id]
            work.emit(
                "item_removed", item_id=effect.item_id, quantity=removed, total=held - removed
            )
        elif isinstance(effect, AddMemory):
            template = effect.memory
            if any(m.id == template.id for m in save.memories):
                return
            save.memories.append(Memory(
                **template.model_dump(),
                scene_id=save.current_scene_id,
                phase=save.current_phase,
                acquired_at=self._clock(),
            ))
            work.emit("memory_added", memory_id=template.id, title=template.title)
        elif isinstance(effect, UnlockAchievement):
            achievement = self._bundle.achievement(effect.achievement_id)
            if achievement.id not in save.achievements:
                save.achievements.append(achievement.id)
                work.emit("achievement_unlocked", achievement_id=achievement.id, name=achievement.name)
        elif isinstance(effect, ChangePhase):
            self._advance_phase(work, effect.phase)
        elif isinstance(effect, ChangeSceneEffect):
            # Navigation effect, resolved by the caller after the others.
            pass

    def _enter_scene(self, work: _Work, scene: Scene) -> None:
        self._advance_phase(work, scene.phase)
        for effect in scene.entry_effects:
            self._apply_effect(work, effect)
        if scene.entry_dialog_id:
            self._start_dialog(work, scene.entry_dialog_id)

    def _change_scene(self, work: _Work, scene_id: str) -> None:
        scene = self._bundle.scene(scene_id)
        s = work.state
        previous = s.save.current_scene_id
        s.mode = "exploring"
        s.dialog_id = None
        s.generated = {}
        s.request = None
        s.request_timeout = None
        s.generation_error = None
        s.save.current_scene_id = scene.id
        s.save.current_dialog_id = None
        work.emit("scene_changed", scene_id=scene.id, previous=previous)
        self._enter_scene(work, scene)

    def _new_request(self, work: _Work, speaker: str, hint: str) -> GenerationRequest:
        s = work.state
        scene = self._bundle.scene(s.save.current_scene_id)
        recent: list[str] = []
        if s.dialog_id is not None:
            recent.append(self._resolver.node(s.dialog_id, s.generated).text)
        return GenerationRequest(
            request_id=uuid.uuid4().hex[:12],
            speaker=speaker,
            speaker_name=self._resolver.resolve_speaker(speaker).name,
            hint=hint,
            scene_id=scene.id,
            scene_name=scene.name,
            scene_description=scene.description,
            phase=s.save.current_phase,
            flags=list(s.save.flags),
            recent_lines=recent,
        )

    def _begin_loading(self, work: _Work, request: GenerationRequest, timeout: float | None) -> None:
        s = work.state
        s.mode = "loading"
        s.dialog_id = None
        s.generated = {}
        s.save.current_dialog_id = None
        s.request = request
        s.request_timeout = timeout
        s.generation_error = None
        work.emit("generation_started", request_id=request.request_id, speaker=request.speaker)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _on_new_game(self, work: _Work, intent: NewGame) -> None:
        save = new_save(self._bundle, intent.player_name, self._clock())
        work.state = EngineState(save=save, reveal_id=work.state.reveal_id + 1)
        work.emit("game_started", save_id=save.id, scene_id=save.current_scene_id)
        self._enter_scene(work, self._bundle.start_scene)

    def _on_start_dialog(self, work: _Work, intent: StartDialog) -> None:
        self._start_dialog(work, intent.dialog_id)

    def _on_advance(self, work: _Work, intent: Advance) -> None:
        s = work.state
        if s.mode == "typing":
            self._complete_reveal(work)
        elif s.mode == "complete_no_choices":
            successor = self._resolver.successor(self._current_node(s))
            if successor is None:
                self._end_dialog(work)
            else:
                self._show_node(work, successor, "dialog_advanced")
        elif s.mode == "generation_failed":
            self._end_dialog(work)
        elif s.mode == "complete_with_choices":
            raise IllegalTransition("A choice must be made to continue")
        elif s.mode == "loading":
            raise IllegalTransition("Dialog is still being generated")
        else:
            raise IllegalTransition("No dialog to advance")

    def _on_complete_typewriter(self, work: _Work, intent: CompleteTypewriter) -> None:
        if work.state.mode == "typing":
            self._complete_reveal(work)

    def _on_make_choice(self, work: _Work, intent: MakeChoice) -> None:
        s = work.state
        if s.mode != "complete_with_choices":
            raise InvalidChoice(f"Choice {intent.choice_id!r} is not currently selectable")
        node = self._current_node(s)
        choice = self._resolver.select_choice(node, intent.choice_id, s.save.flags)

        target_scene = choice.scene_change
        if target_scene is not None:
            self._bundle.scene(target_scene)
        elif choice.next_id is not None:
            self._resolver.choice_target(choice)

        work.emit("choice_made", dialog_id=node.id, choice_id=choice.id)
        for effect in choice.effects:
            self._apply_effect(work, effect)

        if target_scene is not None:
            self._change_scene(work, target_scene)
        elif choice.next_id is not None:
            self._show_node(work, self._resolver.choice_target(choice), "dialog_advanced")
        else:
            self._end_dialog(work)

    def _on_change_scene(self, work: _Work, intent: ChangeScene) -> None:
        self._change_scene(work, intent.scene_id)

    def _on_click_hotspot(self, work: _Work, intent: ClickHotspot) -> None:
        s = work.state
        if s.mode != "exploring":
            raise IllegalTransition("Hotspots are inactive while a dialog is open")
        save = s.save
        hotspot = self._navigator.find_hotspot(
            save.current_scene_id, intent.hotspot_id, save.flags, save.visited_spots
        )
        transition = self._navigator.on_hotspot(hotspot, save.flags)

        save.visited_spots.append(spot_key(save.current_scene_id, hotspot.id))
        work.emit("spot_visited", scene_id=save.current_scene_id, hotspot_id=hotspot.id)

        if isinstance(transition, DialogTransition):
            self._start_dialog(work, transition.dialog_id)
        elif isinstance(transition, SceneTransition):
            self._change_scene(work, transition.scene_id)
        elif isinstance(transition, ItemPickup):
            self._apply_effect(work, AddItem(item_id=transition.item_id))
        elif isinstance(transition, RunAction):
            action = self._bundle.action(transition.action_id)
            if action.dialog_id:
                self._bundle.dialog(action.dialog_id)
            for effect in action.effects:
                self._apply_effect(work, effect)
            if action.dialog_id:
                self._start_dialog(work, action.dialog_id)

    def _on_request_dialog(self, work: _Work, intent: RequestDialog) -> None:
        if self._generator is None:
            raise GenerationFailed("No content generator is configured")
        if work.state.mode == "loading":
            raise IllegalTransition("A dialog is already being generated")
        request = self._new_request(work, intent.speaker, intent.hint)
        self._begin_loading(work, request, intent.timeout)

    def _on_retry_generation(self, work: _Work, intent: RetryGeneration) -> None:
        s = work.state
        if s.mode != "generation_failed" or s.request is None:
            raise IllegalTransition("There is no failed generation to retry")
        request = s.request.model_copy(update={"request_id": uuid.uuid4().hex[:12]})
        self._begin_loading(work, request, s.request_timeout)

    # ── Internal messages ──

    def _on_reveal_finished(self, work: _Work, message: RevealFinished) -> None:
        s = work.state
        if s.reveal_id != message.reveal_id:
            logger.warning("stale reveal %d finished (current %d)", message.reveal_id, s.reveal_id)
            return
        if s.mode == "typing":
            self._complete_reveal(work)

    def _on_generation_received(self, work: _Work, message: GenerationReceived) -> None:
        s = work.state
        if s.mode != "loading" or s.request is None or s.request.request_id != message.request_id:
            logger.debug("ignoring stale generation result %s", message.request_id)
            return
        node_id = generated_node_id(message.request_id)
        node = message.node.model_copy(update={"id": node_id, "choices": [], "next": None})
        s.generated[node_id] = node
        self._show_node(work, node, "dialog_started")

    def _on_generation_errored(self, work: _Work, message: GenerationErrored) -> None:
        s = work.state
        if s.mode != "loading" or s.request is None or s.request.request_id != message.request_id:
            logger.debug("ignoring stale generation error %s", message.request_id)
            return
        s.mode = "generation_failed"
        s.generation_error = message.message
        work.emit(
            "generation_failed",
            request_id=message.request_id, kind=message.kind, message=message.message,
        )
