import copy
from datetime import datetime, timedelta, timezone

import pytest

from wayfarer.content import ContentBundle
from wayfarer.engine import NarrativeEngine
from wayfarer.saves import SaveManager, new_save
from wayfarer.storage import MemoryStore
from wayfarer.typewriter import Typewriter



# ── Manual timer source ─────────────────────────────────────


class ManualTimer:
    def __init__(self, when: float, seq: int, callback) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """call_later() that only fires when a test advances the clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._timers: list[ManualTimer] = []

    def call_later(self, delay: float, callback) -> ManualTimer:
        self._seq += 1
        timer = ManualTimer(self.now + delay, self._seq, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self.now = target
        self._timers = [t for t in self._timers if not t.cancelled]


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# ── Content ─────────────────────────────────────────────────


def _hotspot(id, kind, target_id, label=None, condition=None, **extra):
    spot = {
        "id": id, "x": 10, "y": 10, "width": 20, "height": 20,
        "label": label or id, "kind": kind, "target_id": target_id,
    }
    if condition:
        spot["condition"] = condition
    spot.update(extra)
    return spot


BUNDLE_DATA = {
    "title": "Test trip",
    "start_scene_id": "scene_home_planning",
    "characters": [
        {"id": "player", "name": "Traveler", "type": "player", "color": "#4caf50"},
        {
            "id": "airport_staff", "name": "Yun",
            "sprites": {"happy": "yun_happy.png"},
            "default_sprite": "yun.png", "color": "#667eea",
        },
    ],
    "items": [
        {"id": "item_coin", "name": "Coin"},
        {"id": "item_map", "name": "Map"},
    ],
    "achievements": [
        {"id": "achievement_checked_in", "name": "Ready to fly"},
    ],
    "actions": [
        {
            "id": "action_find_map",
            "label": "Search the desk",
            "effects": [
                {"type": "add_item", "item_id": "item_map"},
                {"type": "add_memory", "memory": {"id": "memory_map", "title": "An old map"}},
            ],
            "dialog_id": "dialog_map_found",
        },
    ],
    "scenes": [
        {
            "id": "scene_home_planning", "phase": "planning", "name": "Study",
            "hotspots": [
                _hotspot("hotspot_computer", "dialog", "dialog_search_destinations", highlighted=True),
                _hotspot("hotspot_magazines", "dialog", "dialog_browse_magazines"),
                _hotspot("hotspot_coin", "item", "item_coin"),
                _hotspot("hotspot_desk", "action", "action_find_map"),
                _hotspot("hotspot_booking", "scene", "scene_booking_online",
                         condition="destination_chosen"),
                _hotspot("hotspot_broken", "dialog", "dialog_missing"),
            ],
        },
        {
            "id": "scene_booking_online", "phase": "booking", "name": "Booking site",
            "entry_dialog_id": "dialog_booking_start",
            "entry_effects": [{"type": "set_flag", "flag": "saw_booking"}],
            "hotspots": [_hotspot("hotspot_next", "scene", "scene_home_packing")],
        },
        {
            "id": "scene_home_packing", "phase": "departure", "name": "Bedroom",
            "entry_dialog_id": "dialog_departure_start",
            "hotspots": [
                _hotspot("hotspot_suitcase", "dialog", "dialog_pack_luggage"),
                _hotspot("hotspot_door", "scene", "scene_airport_entrance", condition="packed"),
            ],
        },
        {
            "id": "scene_airport_entrance", "phase": "departure", "name": "Terminal",
            "entry_dialog_id": "dialog_airport_arrival",
            "hotspots": [
                _hotspot("hotspot_checkin", "dialog", "dialog_checkin"),
                _hotspot("hotspot_home", "scene", "scene_home_planning"),
            ],
        },
    ],
    "dialogs": [
        {"id": "dialog_planning_start", "speaker": "narrator",
         "text": "Sunlight fills the study.", "next": "dialog_planning_thought"},
        {"id": "dialog_planning_thought", "speaker": "player", "text": "Time for a trip!"},
        {"id": "dialog_search_destinations", "speaker": "narrator",
         "text": "Starmoon Isle catches your eye.", "next": "dialog_decide_destination"},
        {"id": "dialog_browse_magazines", "speaker": "narrator", "text": "A floating island."},
        {"id": "dialog_interested", "speaker": "player", "emotion": "excited",
         "text": "I have to go!"},
        {"id": "dialog_decide_destination", "speaker": "narrator", "text": "Where to?",
         "choices": [
             {"id": "choice_island", "text": "Starmoon Isle", "next_id": "dialog_interested",
              "effects": [
                  {"type": "set_flag", "flag": "destination_chosen"},
                  {"type": "add_memory", "memory": {"id": "memory_decision", "title": "Decided"}},
              ]},
             {"id": "choice_again", "text": "Once more", "condition": "destination_chosen"},
             {"id": "choice_book", "text": "Book right away",
              "effects": [
                  {"type": "set_flag", "flag": "destination_chosen"},
                  {"type": "change_scene", "scene_id": "scene_booking_online"},
              ]},
             {"id": "choice_broken", "text": "Nowhere", "next_id": "dialog_missing"},
             {"id": "choice_later", "text": "Not yet"},
         ]},
        {"id": "dialog_booking_start", "speaker": "narrator", "text": "The booking page loads."},
        {"id": "dialog_departure_start", "speaker": "narrator", "text": "Departure day."},
        {"id": "dialog_pack_luggage", "speaker": "narrator", "text": "How will you pack?",
         "choices": [
             {"id": "choice_pack_light", "text": "Light", "next_id": "dialog_light_pack",
              "effects": [{"type": "set_flag", "flag": "packed"}]},
             {"id": "choice_pack_full", "text": "Everything",
              "effects": [
                  {"type": "set_flag", "flag": "pack_full"},
                  {"type": "set_flag", "flag": "packed"},
              ]},
         ]},
        {"id": "dialog_light_pack", "speaker": "player", "text": "Travel light."},
        {"id": "dialog_airport_arrival", "speaker": "narrator", "text": "The terminal hums."},
        {"id": "dialog_checkin", "speaker": "airport_staff", "emotion": "happy",
         "text": "Good morning!"},
        {"id": "dialog_map_found", "speaker": "player", "text": "An old map!"},
        {"id": "dialog_checkin_desk", "speaker": "airport_staff", "text": "That will be two coins.",
         "choices": [
             {"id": "choice_pay", "text": "Pay",
              "effects": [
                  {"type": "remove_item", "item_id": "item_coin", "quantity": 2},
                  {"type": "unlock_achievement", "achievement_id": "achievement_checked_in"},
              ]},
         ]},
    ],
}


@pytest.fixture
def bundle_data() -> dict:
    return copy.deepcopy(BUNDLE_DATA)


@pytest.fixture
def bundle(bundle_data) -> ContentBundle:
    return ContentBundle.from_dict(bundle_data)


# ── Engine ──────────────────────────────────────────────────


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def saves(store) -> SaveManager:
    return SaveManager(store)


@pytest.fixture
def save(bundle, clock):
    return new_save(bundle, "Ada", clock(), save_id="save-1")


@pytest.fixture
def engine(bundle, save, scheduler, clock, saves) -> NarrativeEngine:
    return NarrativeEngine(
        bundle,
        save,
        typewriter=Typewriter(cps=10, scheduler=scheduler),
        clock=clock,
        saves=saves,
    )
