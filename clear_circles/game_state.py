"""Session game state: target count, clock, score, status, and the controller that owns them."""

import logging
from dataclasses import dataclass, replace
from enum import Enum

from .circles import Circle, CircleFactory, PlayArea
from .completion import CompletionDetector
from .engine import CircleEngine
from .timers import PeriodicTimer, Scheduler, Timeout

logger = logging.getLogger(__name__)

MIN_POINTS = 5
DEFAULT_POINTS = 5
MAX_POINTS = 10000
CLOCK_TICK = 0.1  # seconds; elapsed advances by this much per tick
VALIDATION_ERROR_SECONDS = 3.0
RESTART_GRACE_SECONDS = 0.05
VALIDATION_MESSAGE = f"You must enter a number >= {MIN_POINTS} in Points to play"


class GameStatus(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    FINISHED = "finished"
    GAME_OVER = "gameOver"


@dataclass(frozen=True)
class SessionState:
    """Snapshot of one session. GameSession swaps it for a new one on every change."""

    points: int = DEFAULT_POINTS
    elapsed: float = 0.0
    status: GameStatus = GameStatus.IDLE
    auto_play: bool = False
    score: int = 0
    epoch: int = 0
    validation_error: str = ""
    wrong_circle_id: str | None = None

    @property
    def is_playing(self) -> bool:
        return self.status is GameStatus.PLAYING

    @property
    def is_game_over(self) -> bool:
        return self.status is GameStatus.GAME_OVER

    @property
    def is_complete(self) -> bool:
        return self.status is GameStatus.FINISHED


class GameSession:
    """Session controller: sole owner of status, elapsed, score, auto-play and epoch.

    Wires a CircleEngine and a CompletionDetector together. Every state change
    replaces self.state and is then pushed to the engine (which populates,
    clears and runs its timers accordingly) and to the detector.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        points: int = DEFAULT_POINTS,
        factory: CircleFactory | None = None,
    ):
        self.scheduler = scheduler
        self.state = SessionState(points=points)
        self.engine = CircleEngine(
            scheduler,
            factory=factory,
            on_score=self.on_score_event,
            on_game_over=self.on_game_over,
            on_change=self._on_circles_changed,
        )
        self.detector = CompletionDetector(
            on_stop_timer=self.stop_timer,
            on_complete=self.on_completion,
        )
        self._clock = PeriodicTimer(scheduler, CLOCK_TICK, self._tick)
        self._validation_timeout = Timeout(scheduler)
        self._restart_timeout = Timeout(scheduler)

    @property
    def circles(self) -> list[Circle]:
        return self.engine.circles

    def set_play_area(self, width: float, height: float) -> None:
        """Bounds used for positioning circles created from now on."""
        self.engine.factory.area = PlayArea(width=width, height=height)

    # ----------------------------
    # state propagation
    # ----------------------------
    def _set_state(self, **changes) -> None:
        old = self.state
        new = replace(old, **changes)
        self.state = new
        if new.is_playing and not old.is_playing:
            self._clock.start()
        elif old.is_playing and not new.is_playing:
            self._clock.stop()
        self.engine.sync(
            playing=new.is_playing,
            points=new.points,
            auto_play=new.auto_play,
            epoch=new.epoch,
            game_over=new.is_game_over,
        )
        self.detector.observe(self.state.is_playing, self.engine.circles)

    def _on_circles_changed(self, circles: list[Circle]) -> None:
        self.detector.observe(self.state.is_playing, circles)

    def _tick(self) -> None:
        self._set_state(elapsed=round(self.state.elapsed + CLOCK_TICK, 1))

    # ----------------------------
    # actions
    # ----------------------------
    def configure(self, points: int) -> bool:
        """Set the target count. Refused (returns False) while playing."""
        if self.state.is_playing:
            return False
        self._validation_timeout.cancel()
        self._set_state(points=points, validation_error="")
        return True

    def play(self) -> bool:
        """Start a session from idle or finished. Returns whether it started.

        A target count below MIN_POINTS leaves the status alone and shows a
        validation message for VALIDATION_ERROR_SECONDS.
        """
        if self.state.status not in (GameStatus.IDLE, GameStatus.FINISHED):
            return False
        if self.state.points < MIN_POINTS:
            self._set_state(validation_error=VALIDATION_MESSAGE)
            self._validation_timeout.schedule(VALIDATION_ERROR_SECONDS, self._clear_validation_error)
            return False
        self._validation_timeout.cancel()
        logger.info("Starting session with %d circles", self.state.points)
        self._set_state(
            validation_error="",
            status=GameStatus.PLAYING,
            elapsed=0.0,
            score=0,
            wrong_circle_id=None,
        )
        return True

    def restart(self) -> None:
        """Drop to idle with a fresh epoch now, and resume playing after a short grace delay."""
        self._restart_timeout.cancel()
        self._validation_timeout.cancel()
        logger.info("Restarting session (epoch %d)", self.state.epoch + 1)
        self._set_state(
            status=GameStatus.IDLE,
            elapsed=0.0,
            score=0,
            auto_play=False,
            wrong_circle_id=None,
            validation_error="",
            epoch=self.state.epoch + 1,
        )
        self._restart_timeout.schedule(RESTART_GRACE_SECONDS, self._resume_after_restart)

    def _resume_after_restart(self) -> None:
        if self.state.points >= MIN_POINTS and self.state.status is GameStatus.IDLE:
            self._set_state(status=GameStatus.PLAYING)

    def toggle_auto_play(self) -> bool:
        """Flip auto-play. Only available while playing; otherwise returns False."""
        if not self.state.is_playing:
            return False
        self._set_state(auto_play=not self.state.auto_play)
        return self.state.auto_play

    def click(self, circle_id: str) -> bool | None:
        """Manual click. True correct, False wrong, None ignored."""
        return self.engine.handle_click(circle_id)

    def _clear_validation_error(self) -> None:
        self._set_state(validation_error="")

    # ----------------------------
    # engine and detector callbacks
    # ----------------------------
    def on_score_event(self) -> None:
        self._set_state(score=self.state.score + 1)

    def on_game_over(self, circle_id: str) -> None:
        logger.info("Game over after %d correct clicks", self.state.score)
        self._set_state(status=GameStatus.GAME_OVER, wrong_circle_id=circle_id, auto_play=False)

    def stop_timer(self) -> None:
        self._clock.stop()

    def on_completion(self) -> None:
        logger.info("All cleared in %.1fs", self.state.elapsed)
        self._set_state(status=GameStatus.FINISHED, auto_play=False)

    def close(self) -> None:
        """Cancel every timer this session owns."""
        self._clock.stop()
        self._validation_timeout.cancel()
        self._restart_timeout.cancel()
        self.engine.close()
