"""Circle management: the live field, click sequencing, expiry and auto-play."""

import logging
from dataclasses import replace
from typing import Callable

from .circles import EXPIRY_SECONDS, Circle, CircleFactory, expected_number, has_wrong_circle
from .timers import PeriodicTimer, Scheduler

logger = logging.getLogger(__name__)

EXPIRY_SWEEP_INTERVAL = 0.1  # seconds between expiry sweeps
AUTO_PLAY_INTERVAL = 0.8  # seconds between auto-play clicks


class CircleEngine:
    """Owns the circles of the current session.

    The collection is a dict of id -> Circle that is only ever replaced as a
    whole, and every upward signal is sent after the new collection is in
    place. Session flags arrive through sync(); the engine reports back with:

    - on_score(): a correct click (manual or auto-played)
    - on_game_over(circle_id): an out-of-order click
    - on_change(circles): the collection was replaced
    """

    def __init__(
        self,
        scheduler: Scheduler,
        factory: CircleFactory | None = None,
        on_score: Callable[[], None] | None = None,
        on_game_over: Callable[[str], None] | None = None,
        on_change: Callable[[list[Circle]], None] | None = None,
    ):
        self.scheduler = scheduler
        self.factory = factory or CircleFactory()
        self.on_score = on_score
        self.on_game_over = on_game_over
        self.on_change = on_change
        self._circles: dict[str, Circle] = {}
        self._playing = False
        self._auto_play = False
        self._epoch = 0
        self._deps: tuple[bool, int, bool] | None = None
        self._sweeper = PeriodicTimer(scheduler, EXPIRY_SWEEP_INTERVAL, self.sweep_expired)
        self._auto_player = PeriodicTimer(scheduler, AUTO_PLAY_INTERVAL, self.auto_play_tick)

    @property
    def circles(self) -> list[Circle]:
        return list(self._circles.values())

    @property
    def playing(self) -> bool:
        return self._playing

    def get(self, circle_id: str) -> Circle | None:
        return self._circles.get(circle_id)

    def has_wrong_circle(self) -> bool:
        return has_wrong_circle(self._circles.values())

    def expected_number(self) -> int | None:
        return expected_number(self._circles.values())

    def _commit(self, circles: dict[str, Circle]) -> None:
        self._circles = circles
        if self.on_change:
            self.on_change(self.circles)

    # ----------------------------
    # population
    # ----------------------------
    def populate(self, count: int) -> None:
        """Replace the field with count fresh circles numbered 1..count."""
        created = [self.factory.create(n) for n in range(1, count + 1)]
        logger.info("Populating %d circles", count)
        self._commit({c.id: c for c in created})

    def depopulate(self) -> None:
        if self._circles:
            self._commit({})

    def sync(
        self,
        *,
        playing: bool,
        points: int,
        auto_play: bool,
        epoch: int,
        game_over: bool,
    ) -> None:
        """React to the session's flags.

        A new epoch discards the field. Entering playing (or a new epoch while
        playing) populates it; leaving playing clears it unless the session is
        in game over, where the wrong circle has to stay visible.
        """
        epoch_changed = epoch != self._epoch
        deps = (playing, points, game_over)
        deps_changed = deps != self._deps
        self._epoch = epoch
        self._deps = deps

        if epoch_changed:
            self.depopulate()
        if deps_changed or (epoch_changed and playing):
            if playing:
                self.populate(points)
            elif not game_over:
                self.depopulate()

        if playing and not self._sweeper.running:
            self._sweeper.start()
        elif not playing:
            self._sweeper.stop()

        wants_auto_play = playing and auto_play
        if wants_auto_play != self._auto_play:
            if wants_auto_play:
                self._auto_player.start()
            else:
                self._auto_player.stop()
        self._auto_play = wants_auto_play
        self._playing = playing

    # ----------------------------
    # clicks
    # ----------------------------
    def handle_click(self, circle_id: str) -> bool | None:
        """Apply a click. Returns True (correct), False (wrong) or None (ignored).

        Only the circle holding the smallest unresolved number may be clicked;
        anything else marks that circle wrong and ends the game.
        """
        if not self._playing or self.has_wrong_circle():
            return None
        circle = self._circles.get(circle_id)
        if circle is None or circle.resolved:
            return None
        expected = self.expected_number()
        if expected is None:
            return None
        if circle.number == expected:
            self._mark_clicked(circle)
            return True
        logger.info("Wrong click on %d (expected %d)", circle.number, expected)
        self._commit({**self._circles, circle.id: replace(circle, wrong=True)})
        if self.on_game_over:
            self.on_game_over(circle.id)
        return False

    def _mark_clicked(self, circle: Circle) -> None:
        now = self.scheduler.now()
        logger.debug("Circle %d clicked at %.2f", circle.number, now)
        self._commit({**self._circles, circle.id: replace(circle, clicked=True, clicked_at=now)})
        if self.on_score:
            self.on_score()

    # ----------------------------
    # periodic activities
    # ----------------------------
    def sweep_expired(self) -> None:
        """Remove clicked circles older than EXPIRY_SECONDS, unless the field is frozen."""
        if self.has_wrong_circle():
            return
        now = self.scheduler.now()
        kept = {}
        for circle_id, circle in self._circles.items():
            age = circle.age(now)
            if age is not None and age >= EXPIRY_SECONDS:
                logger.debug("Circle %d expired", circle.number)
                continue
            kept[circle_id] = circle
        if len(kept) != len(self._circles):
            self._commit(kept)

    def auto_play_tick(self) -> None:
        """Click the expected circle, exactly as a correct manual click would."""
        if self.has_wrong_circle():
            return
        expected = self.expected_number()
        if expected is None:
            return
        circle = next(
            c for c in self._circles.values() if not c.resolved and c.number == expected
        )
        logger.debug("Auto-play clicks %d", expected)
        self._mark_clicked(circle)

    def close(self) -> None:
        """Cancel both periodic activities."""
        self._sweeper.stop()
        self._auto_player.stop()
        self._auto_play = False
