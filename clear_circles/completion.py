"""Detects when the field has been cleared."""

import logging
from typing import Callable, Sequence

from .circles import Circle, has_wrong_circle

logger = logging.getLogger(__name__)


class CompletionDetector:
    """Declares completion once a started session's field is empty with no wrong circle.

    has_started guards against calling an empty field "cleared" before the
    first population lands; it resets whenever the session stops playing.
    """

    def __init__(
        self,
        on_stop_timer: Callable[[], None] | None = None,
        on_complete: Callable[[], None] | None = None,
    ):
        self.on_stop_timer = on_stop_timer
        self.on_complete = on_complete
        self.has_started = False

    def observe(self, playing: bool, circles: Sequence[Circle]) -> bool:
        """Feed the latest session flag and field. Returns True if completion fired."""
        if not playing:
            self.has_started = False
            return False
        if circles and not self.has_started:
            self.has_started = True
        if not self.has_started or circles or has_wrong_circle(circles):
            return False

        logger.info("Field cleared")
        # Reset first; on_complete ends the playing state.
        self.has_started = False
        if self.on_stop_timer:
            self.on_stop_timer()
        if self.on_complete:
            self.on_complete()
        return True
