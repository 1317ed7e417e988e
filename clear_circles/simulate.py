import argparse
import json
import logging
import random
import sys
from typing import Any

from .circles import CircleFactory, PlayArea
from .display import area_height
from .game_state import DEFAULT_POINTS, GameSession, GameStatus
from .screenshot import render_field_screenshot
from .timers import ManualScheduler

STEP = 0.1  # seconds of virtual time per simulation step


def _parse_clicks(value: str) -> list[int]:
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"--clicks expects comma-separated integers: {value}") from e


def run_simulation(
    points: int = DEFAULT_POINTS,
    clicks: list[int] | None = None,
    interval: float = 0.5,
    seed: int | None = None,
    width: int = 800,
    height: int | None = None,
    max_seconds: float = 300.0,
    screenshot_path: str | None = None,
) -> dict[str, Any]:
    """Play one session on a virtual clock and summarize it.

    Without clicks, auto-play clears the field. With clicks, the circles
    holding those numbers are clicked in order, one every interval seconds.
    """
    scheduler = ManualScheduler()
    area = PlayArea(width=width, height=height or area_height(points))
    factory = CircleFactory(area=area, rng=random.Random(seed))
    session = GameSession(scheduler, factory=factory)
    session.configure(points)
    started = session.play()

    if started and clicks is None:
        session.toggle_auto_play()
    elif started:
        for number in clicks:
            scheduler.run_until(lambda: not session.state.is_playing, interval, STEP)
            if not session.state.is_playing:
                break
            target = next((c for c in session.circles if c.number == number), None)
            if target is not None:
                session.click(target.id)

    if started:
        scheduler.run_until(lambda: not session.state.is_playing, max_seconds, STEP)

    state = session.state
    wrong = session.engine.get(state.wrong_circle_id) if state.wrong_circle_id else None
    if screenshot_path:
        render_field_screenshot(
            session.circles, scheduler.now(), int(area.width), int(area.height), save_path=screenshot_path
        )
    session.close()
    return {
        "status": state.status.value,
        "score": state.score,
        "elapsed": state.elapsed,
        "points": state.points,
        "wrong_number": wrong.number if wrong else None,
        "validation_error": state.validation_error or None,
    }


def main() -> None:
    """CLI entrypoint: run a session offline and print a JSON summary."""
    parser = argparse.ArgumentParser(description="Simulate a Clear Circles session")
    parser.add_argument(
        "points",
        nargs="?",
        type=int,
        default=DEFAULT_POINTS,
        help=f"Number of circles (default: {DEFAULT_POINTS})",
    )
    parser.add_argument(
        "--clicks",
        type=_parse_clicks,
        default=None,
        metavar="N,N,...",
        help="Numbers to click in order instead of auto-play (e.g. --clicks 1,2,4)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=0.5,
        metavar="S",
        help="Seconds between scripted clicks (default: 0.5)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for circle positions")
    parser.add_argument("--width", type=int, default=800, help="Play area width in pixels")
    parser.add_argument(
        "--height", type=int, default=None, help="Play area height (default: derived from points)"
    )
    parser.add_argument(
        "--max-seconds",
        type=float,
        default=300.0,
        metavar="S",
        help="Give up after S seconds of virtual time (default: 300)",
    )
    parser.add_argument("--screenshot", default=None, metavar="PATH", help="Save final field PNG")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper())
    result = run_simulation(
        points=args.points,
        clicks=args.clicks,
        interval=args.interval,
        seed=args.seed,
        width=args.width,
        height=args.height,
        max_seconds=args.max_seconds,
        screenshot_path=args.screenshot,
    )
    print(json.dumps(result, indent=2))
    if result["validation_error"]:
        print(result["validation_error"], file=sys.stderr)
    if result["status"] != GameStatus.FINISHED.value:
        sys.exit(1)


if __name__ == "__main__":
    main()
