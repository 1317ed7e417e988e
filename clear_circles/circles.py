"""Circle values, the play area, and the factory that places new circles."""

import random
import uuid
from dataclasses import dataclass
from typing import Iterable

CIRCLE_SIZE = 60  # circle diameter in pixels
EXPIRY_SECONDS = 3.0  # a clicked circle disappears this long after its click


@dataclass(frozen=True)
class Circle:
    """One numbered target. Never mutated: state changes produce a new Circle."""

    id: str
    x: float
    y: float
    number: int
    clicked: bool = False
    clicked_at: float | None = None
    wrong: bool = False

    @property
    def resolved(self) -> bool:
        """Clicked or wrong; either way it no longer counts toward the sequence."""
        return self.clicked or self.wrong

    def age(self, now: float) -> float | None:
        """Seconds since the correct click, or None if never clicked."""
        if not self.clicked or self.clicked_at is None:
            return None
        return now - self.clicked_at


@dataclass(frozen=True)
class PlayArea:
    """Bounding box of the play field in pixels."""

    width: float
    height: float


def has_wrong_circle(circles: Iterable[Circle]) -> bool:
    """True once any circle was clicked out of order; the field is frozen from then on."""
    return any(c.wrong for c in circles)


def expected_number(circles: Iterable[Circle]) -> int | None:
    """Smallest number that is neither clicked nor wrong, or None if all are resolved."""
    return min((c.number for c in circles if not c.resolved), default=None)


class CircleFactory:
    """Creates circles at random positions inside the current play area.

    The whole circle stays inside the area. With no area known yet, circles
    land at the origin.
    """

    def __init__(self, area: PlayArea | None = None, rng: random.Random | None = None):
        self.area = area
        self._rng = rng or random.Random()

    def random_position(self) -> tuple[float, float]:
        if self.area is None:
            return 0.0, 0.0
        max_x = max(0.0, self.area.width - CIRCLE_SIZE)
        max_y = max(0.0, self.area.height - CIRCLE_SIZE)
        return self._rng.random() * max_x, self._rng.random() * max_y

    def create(self, number: int) -> Circle:
        x, y = self.random_position()
        return Circle(id=uuid.uuid4().hex, x=x, y=y, number=number)
