from __future__ import annotations

import random
from collections import Counter

import pytest

from errors import InvalidTransition, ProviderUnavailable, SelectionBusy
from models import GeoPoint, Venue
from services.selection import SelectionEngine, SelectionStatus


def _venues(n: int):
    return [
        Venue(id=f"v{i}", name=f"店{i}", location=GeoPoint(25.0, 121.5), distance_m=float(i * 100))
        for i in range(n)
    ]


def test_uniform_final_draw() -> None:
    engine = SelectionEngine(ticks=0, rng=random.Random(42))
    engine.complete_search(engine.begin_search(), _venues(5))
    counts = Counter(engine.draw_final().id for _ in range(10_000))
    assert set(counts) == {f"v{i}" for i in range(5)}
    for count in counts.values():
        assert 1800 < count < 2200


def test_full_cycle_and_reroll_reuses_candidates() -> None:
    engine = SelectionEngine(ticks=5, rng=random.Random(1))
    candidates = _venues(3)
    states = []
    engine.subscribe(lambda update: states.append(update.state))

    previews = list(engine.start(candidates))
    assert len(previews) == 5
    assert engine.state is SelectionStatus.SELECTED
    assert engine.final in candidates
    assert engine.candidates is candidates

    first_final = engine.final
    previews = list(engine.reroll())
    assert len(previews) == 5
    assert engine.state is SelectionStatus.SELECTED
    assert engine.candidates is candidates
    assert engine.final in candidates
    assert first_final in candidates

    assert states[0] is SelectionStatus.SEARCHING
    assert SelectionStatus.PRESENTING in states
    assert states[-1] is SelectionStatus.SELECTED


def test_spin_returns_final() -> None:
    engine = SelectionEngine(ticks=3, rng=random.Random(3))
    engine.complete_search(engine.begin_search(), _venues(4))
    final = engine.spin()
    assert engine.final is final
    assert engine.spin() in engine.candidates


def test_busy_guard_while_searching_and_animating() -> None:
    engine = SelectionEngine(ticks=3)
    token = engine.begin_search()
    with pytest.raises(SelectionBusy):
        engine.begin_search()
    engine.complete_search(token, _venues(2))

    previews = engine.start()
    next(previews)
    assert engine.busy
    with pytest.raises(SelectionBusy):
        engine.begin_search()
    with pytest.raises(InvalidTransition):
        engine.reroll()


def test_stale_search_result_is_ignored() -> None:
    engine = SelectionEngine(ticks=1)
    old = engine.begin_search()
    engine.restart()
    new = engine.begin_search()

    assert engine.complete_search(old, _venues(2)) is False
    assert engine.state is SelectionStatus.SEARCHING
    assert engine.complete_search(new, _venues(1)) is True
    assert engine.state is SelectionStatus.PRESENTING


def test_empty_candidates_fail() -> None:
    engine = SelectionEngine()
    engine.complete_search(engine.begin_search(), [])
    assert engine.state is SelectionStatus.FAILED
    with pytest.raises(InvalidTransition):
        engine.start()
    with pytest.raises(InvalidTransition):
        engine.start([])


def test_fail_search_records_error() -> None:
    engine = SelectionEngine()
    token = engine.begin_search()
    error = ProviderUnavailable([])
    assert engine.fail_search(token, error)
    assert engine.state is SelectionStatus.FAILED
    assert engine.error is error
    assert not engine.busy


def test_restart_invalidates_running_animation() -> None:
    engine = SelectionEngine(ticks=10)
    previews = engine.start(_venues(3))
    next(previews)
    engine.restart()
    assert list(previews) == []
    assert engine.state is SelectionStatus.IDLE
    assert engine.final is None
    assert engine.candidates is None


def test_finish_stops_animation_early() -> None:
    engine = SelectionEngine(ticks=10, rng=random.Random(0))
    previews = engine.start(_venues(3))
    next(previews)
    final = engine.finish()
    assert list(previews) == []
    assert engine.final is final
    assert engine.state is SelectionStatus.SELECTED


def test_unsubscribe() -> None:
    engine = SelectionEngine()
    seen = []
    unsubscribe = engine.subscribe(seen.append)
    engine.begin_search()
    unsubscribe()
    engine.restart()
    assert len(seen) == 1


def test_from_timing() -> None:
    assert SelectionEngine.from_timing(2000, 100).ticks == 20
    assert SelectionEngine.from_timing(1500, 0).ticks == 0


def test_failed_search_requires_restart() -> None:
    engine = SelectionEngine()
    engine.fail_search(engine.begin_search(), ProviderUnavailable([]))
    with pytest.raises(InvalidTransition):
        engine.begin_search()
    with pytest.raises(InvalidTransition):
        engine.start(_venues(2))

    engine.restart()
    assert engine.complete_search(engine.begin_search(), _venues(2))
    assert engine.state is SelectionStatus.PRESENTING


def test_spin_interrupted_by_restart_raises() -> None:
    engine = SelectionEngine(ticks=3)
    engine.complete_search(engine.begin_search(), _venues(2))

    def _restart_on_first_preview(update):
        if update.state is SelectionStatus.ANIMATING and update.current is not None:
            engine.restart()

    engine.subscribe(_restart_on_first_preview)
    with pytest.raises(InvalidTransition):
        engine.spin()
    assert engine.state is SelectionStatus.IDLE
