"""Pure presentation helpers: colors, countdowns, stacking, headline."""

from typing import Sequence

from .circles import EXPIRY_SECONDS, Circle, expected_number
from .game_state import GameStatus

COLOR_DEFAULT = "default"
COLOR_CLICKED = "clicked"
COLOR_WRONG = "wrong"


def circle_color(clicked: bool, wrong: bool = False) -> str:
    """Wrong wins over clicked; otherwise the default look."""
    if wrong:
        return COLOR_WRONG
    if clicked:
        return COLOR_CLICKED
    return COLOR_DEFAULT


def circle_opacity(clicked: bool) -> float:
    # Clicked circles stay fully opaque while counting down.
    return 1.0


def text_color(circle: Circle) -> str:
    return "white" if circle.resolved else "black"


def z_index(number: int) -> int:
    """Lower numbers stack on top."""
    return 10000 - number


def countdown_remaining(circle: Circle, now: float) -> float | None:
    age = circle.age(now)
    if age is None:
        return None
    return max(0.0, EXPIRY_SECONDS - age)


def countdown_label(circle: Circle, now: float) -> str | None:
    """Seconds left before a clicked circle disappears, e.g. '2.4'. None when unclicked or expired."""
    remaining = countdown_remaining(circle, now)
    if remaining is None or remaining <= 0:
        return None
    return f"{remaining:.1f}"


def next_number(circles: Sequence[Circle], playing: bool, points: int) -> int:
    """Number shown in the 'Next' hint."""
    if not playing or not circles:
        return 1
    expected = expected_number(circles)
    return expected if expected is not None else points


def area_height(points: int) -> int:
    """Play area height in pixels for a target count (never below 600)."""
    if points > 100:
        return 600
    return max(600, 400 + points * 2)


def headline(status: GameStatus) -> tuple[str, str]:
    """(title, tone) for the page header."""
    if status is GameStatus.FINISHED:
        return "ALL CLEARED", "success"
    if status is GameStatus.GAME_OVER:
        return "GAME OVER", "danger"
    return "LET'S PLAY", "neutral"
