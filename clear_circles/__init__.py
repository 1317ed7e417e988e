"""Clear Circles - click numbered circles in ascending order before the clock runs on.

This package provides the game-session engine (circle generation, click
sequencing, timed expiry, auto-play, completion detection) and a FastAPI
surface for a browser front end.
"""

__version__ = "0.1.0"

from .circles import Circle, CircleFactory, PlayArea
from .engine import CircleEngine
from .game_state import GameSession, GameStatus, SessionState
from .screenshot import render_field_screenshot
from .timers import AsyncioScheduler, ManualScheduler

__all__ = [
    "Circle",
    "CircleFactory",
    "PlayArea",
    "CircleEngine",
    "GameSession",
    "GameStatus",
    "SessionState",
    "render_field_screenshot",
    "AsyncioScheduler",
    "ManualScheduler",
]
