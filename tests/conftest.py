import random

import pytest

from clear_circles.circles import CircleFactory, PlayArea
from clear_circles.game_state import GameSession
from clear_circles.timers import ManualScheduler


@pytest.fixture
def scheduler():
    """Virtual clock starting at t=0."""
    return ManualScheduler()


@pytest.fixture
def factory():
    """Seeded factory over an 800x600 play area."""
    return CircleFactory(area=PlayArea(width=800, height=600), rng=random.Random(1234))


@pytest.fixture
def session(scheduler, factory):
    """Idle session with the default five points."""
    s = GameSession(scheduler, factory=factory)
    yield s
    s.close()