"""Tests for wayfarer.typewriter — time-sliced reveal on a manual clock."""

import pytest

from wayfarer.typewriter import Typewriter, prefixes


class Recorder:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


def test_prefixes_are_ordered_and_finite():
    assert list(prefixes("abc")) == ["a", "ab", "abc"]
    assert list(prefixes("")) == []


@pytest.mark.parametrize("cps", [0, -5])
def test_rejects_non_positive_speed(cps):
    with pytest.raises(ValueError):
        Typewriter(cps)


def test_rejects_negative_start_delay():
    with pytest.raises(ValueError):
        Typewriter(10, start_delay=-1)


class TestReveal:
    def test_reveals_one_character_per_interval(self, scheduler):
        tw = Typewriter(cps=10, scheduler=scheduler)
        tw.start("hello")
        assert tw.revealed == ""
        scheduler.advance(0)
        assert tw.revealed == "h"
        scheduler.advance(0.1)
        assert tw.revealed == "he"
        scheduler.advance(0.2)
        assert tw.revealed == "hell"

    def test_finishes_and_fires_callback_once(self, scheduler):
        done = Recorder()
        tw = Typewriter(cps=10, scheduler=scheduler)
        tw.start("hey", done)
        scheduler.advance(5)
        assert tw.revealed == "hey"
        assert tw.is_complete
        assert not tw.is_running
        assert done.calls == 1
        assert scheduler.pending == 0

    def test_never_reveals_past_text(self, scheduler):
        tw = Typewriter(cps=100, scheduler=scheduler)
        tw.start("ab")
        scheduler.advance(10)
        assert tw.revealed == "ab"

    def test_empty_text_completes_on_first_tick(self, scheduler):
        done = Recorder()
        tw = Typewriter(cps=10, scheduler=scheduler)
        tw.start("", done)
        scheduler.advance(0)
        assert tw.is_complete
        assert done.calls == 1

    def test_start_delay(self, scheduler):
        tw = Typewriter(cps=10, scheduler=scheduler, start_delay=1.0)
        tw.start("abc")
        scheduler.advance(0.5)
        assert tw.revealed == ""
        scheduler.advance(0.5)
        assert tw.revealed == "a"


class TestComplete:
    def test_jumps_to_full_text(self, scheduler):
        done = Recorder()
        tw = Typewriter(cps=10, scheduler=scheduler)
        tw.start("hello world", done)
        scheduler.advance(0.15)
        tw.complete()
        assert tw.revealed == "hello world"
        assert tw.is_complete
        assert done.calls == 1
        assert scheduler.pending == 0

    def test_repeated_complete_is_noop(self, scheduler):
        done = Recorder()
        tw = Typewriter(cps=10, scheduler=scheduler)
        tw.start("hello", done)
        tw.complete()
        tw.complete()
        scheduler.advance(5)
        assert done.calls == 1

    def test_complete_after_natural_finish(self, scheduler):
        done = Recorder()
        tw = Typewriter(cps=10, scheduler=scheduler)
        tw.start("hi", done)
        scheduler.advance(5)
        tw.complete()
        assert done.calls == 1


class TestCancel:
    def test_cancel_suppresses_callback(self, scheduler):
        done = Recorder()
        tw = Typewriter(cps=10, scheduler=scheduler)
        tw.start("hello", done)
        scheduler.advance(0.1)
        tw.cancel()
        scheduler.advance(5)
        assert done.calls == 0
        assert tw.revealed == "he"
        assert not tw.is_complete

    def test_new_start_cancels_previous(self, scheduler):
        first, second = Recorder(), Recorder()
        tw = Typewriter(cps=10, scheduler=scheduler)
        tw.start("first text", first)
        scheduler.advance(0.2)
        tw.start("second", second)
        assert tw.revealed == ""
        scheduler.advance(5)
        assert tw.revealed == "second"
        assert first.calls == 0
        assert second.calls == 1
