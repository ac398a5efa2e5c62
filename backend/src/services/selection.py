"""Roulette selection state machine.

IDLE -> SEARCHING -> PRESENTING -> ANIMATING -> SELECTED -> ANIMATING (reroll) -> ...
SEARCHING -> FAILED on an empty candidate set or a provider error. FAILED only
leaves through restart(), which returns to IDLE from anywhere.

The engine never sleeps. `start()` and `reroll()` hand back a finite preview
generator that the caller drains at its own cadence; draining it performs the
final draw.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Optional, Sequence

from loguru import logger

from errors import InvalidTransition, RouletteError, SelectionBusy
from models import Venue


class SelectionStatus(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    PRESENTING = "presenting"
    ANIMATING = "animating"
    SELECTED = "selected"
    FAILED = "failed"


@dataclass(frozen=True)
class SelectionUpdate:
    state: SelectionStatus
    current: Optional[Venue] = None
    final: Optional[Venue] = None


Listener = Callable[[SelectionUpdate], None]


class SelectionEngine:
    def __init__(self, ticks: int = 20, rng: Optional[random.Random] = None) -> None:
        self.ticks = max(0, int(ticks))
        self.rng = rng or random.Random()
        self.state = SelectionStatus.IDLE
        self.candidates: Optional[Sequence[Venue]] = None
        self.current: Optional[Venue] = None
        self.final: Optional[Venue] = None
        self.error: Optional[RouletteError] = None
        self.generation = 0
        self._animation = 0
        self._listeners: List[Listener] = []

    @classmethod
    def from_timing(cls, duration_ms: int, tick_ms: int, rng: Optional[random.Random] = None) -> "SelectionEngine":
        ticks = duration_ms // tick_ms if tick_ms > 0 else 0
        return cls(ticks=ticks, rng=rng)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _emit(self) -> None:
        update = SelectionUpdate(state=self.state, current=self.current, final=self.final)
        for listener in list(self._listeners):
            listener(update)

    @property
    def busy(self) -> bool:
        return self.state in (SelectionStatus.SEARCHING, SelectionStatus.ANIMATING)

    # search lifecycle

    def begin_search(self) -> int:
        if self.busy:
            raise SelectionBusy(f"cannot search while {self.state.value}")
        if self.state == SelectionStatus.FAILED:
            raise InvalidTransition("restart before searching again")
        self.generation += 1
        self._animation += 1
        self.state = SelectionStatus.SEARCHING
        self.candidates = None
        self.current = None
        self.final = None
        self.error = None
        self._emit()
        return self.generation

    def is_current(self, token: int) -> bool:
        return token == self.generation and self.state == SelectionStatus.SEARCHING

    def complete_search(self, token: int, candidates: Sequence[Venue]) -> bool:
        """Apply a search result; stale tokens are ignored and return False."""
        if not self.is_current(token):
            logger.info("discarding stale search result (token={} generation={})", token, self.generation)
            return False
        if not candidates:
            self.state = SelectionStatus.FAILED
        else:
            self.candidates = candidates
            self.state = SelectionStatus.PRESENTING
        self._emit()
        return True

    def fail_search(self, token: int, error: RouletteError) -> bool:
        if not self.is_current(token):
            return False
        self.error = error
        self.state = SelectionStatus.FAILED
        self._emit()
        return True

    # animation

    def draw_final(self) -> Venue:
        if not self.candidates:
            raise InvalidTransition("no candidates to draw from")
        return self.rng.choice(self.candidates)

    def _previews(self, animation: int) -> Iterator[Venue]:
        for _ in range(self.ticks):
            if animation != self._animation:
                return
            self.current = self.rng.choice(self.candidates)  # type: ignore[arg-type]
            self._emit()
            yield self.current
        if animation == self._animation and self.state == SelectionStatus.ANIMATING:
            self.finish()

    def start(self, candidates: Optional[Sequence[Venue]] = None) -> Iterator[Venue]:
        if candidates is not None:
            if self.state not in (SelectionStatus.IDLE, SelectionStatus.PRESENTING):
                raise InvalidTransition(f"cannot start from {self.state.value}")
            self.complete_search(self.begin_search(), candidates)
            if self.state == SelectionStatus.FAILED:
                raise InvalidTransition("no candidates to draw from")
        if self.state != SelectionStatus.PRESENTING:
            raise InvalidTransition(f"cannot start from {self.state.value}")
        return self._animate()

    def _animate(self) -> Iterator[Venue]:
        self._animation += 1
        self.state = SelectionStatus.ANIMATING
        self.final = None
        self._emit()
        return self._previews(self._animation)

    def finish(self) -> Venue:
        """Stop the current animation and make the final draw."""
        if self.state != SelectionStatus.ANIMATING:
            raise InvalidTransition(f"cannot finish from {self.state.value}")
        self._animation += 1
        self.final = self.draw_final()
        self.current = self.final
        self.state = SelectionStatus.SELECTED
        logger.info("selected {} from {} candidates", self.final.name, len(self.candidates or ()))
        self._emit()
        return self.final

    def reroll(self) -> Iterator[Venue]:
        if self.state != SelectionStatus.SELECTED:
            raise InvalidTransition(f"cannot reroll from {self.state.value}")
        return self._animate()

    def spin(self) -> Venue:
        """Drain the preview sequence of a fresh animation and return the final pick."""
        previews = self.reroll() if self.state == SelectionStatus.SELECTED else self.start()
        for _ in previews:
            pass
        if self.final is None:
            raise InvalidTransition("spin ended without a final pick")
        return self.final

    def restart(self) -> None:
        self.generation += 1
        self._animation += 1
        self.state = SelectionStatus.IDLE
        self.candidates = None
        self.current = None
        self.final = None
        self.error = None
        self._emit()
