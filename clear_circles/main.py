"""FastAPI app: one game session driven by the event loop, plus YAML config loading."""

import base64
import logging
import os
import random
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Literal

import yaml
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, field_validator

from .circles import CircleFactory
from .display import (
    area_height,
    circle_color,
    circle_opacity,
    countdown_label,
    headline,
    next_number,
    text_color,
    z_index,
)
from .game_state import DEFAULT_POINTS, MAX_POINTS, MIN_POINTS, GameSession
from .screenshot import render_field_screenshot
from .timers import AsyncioScheduler

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CLEAR_CIRCLES_CONFIG"
DEFAULT_CONFIG_PATH = "configs/game.yaml"
DEFAULT_AREA_WIDTH = 800
DEFAULT_ALLOWED_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


def _check_points(v: int) -> int:
    if v < 0 or v > MAX_POINTS:
        raise ValueError(f"points must be between 0 and {MAX_POINTS}, got {v}")
    return v


class GameConfig(BaseModel):
    """Server settings read from YAML."""

    points: int = DEFAULT_POINTS
    area_width: int = DEFAULT_AREA_WIDTH
    area_height: int | None = None  # derived from points when unset
    log_level: str = "INFO"
    seed: int | None = None

    @field_validator("points")
    @classmethod
    def validate_points(cls, v: int) -> int:
        return _check_points(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v}")
        return level


def _load_config_from_yaml(path: str | None = None) -> GameConfig:
    """Load GameConfig from YAML.

    path defaults to $CLEAR_CIRCLES_CONFIG, then configs/game.yaml. Only the
    implicit default may be missing (giving defaults); a named file must exist.
    """
    explicit = path or os.environ.get(CONFIG_ENV_VAR)
    p = Path(explicit or DEFAULT_CONFIG_PATH)
    if not p.is_absolute():
        p = Path.cwd() / p
    if not p.exists():
        if explicit:
            raise FileNotFoundError(f"Config file not found: {p}")
        return GameConfig()
    with open(p) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {p}")
    return GameConfig(**data)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = _load_config_from_yaml()
    logging.basicConfig(level=config.log_level)
    app.state.config = config
    rng = random.Random(config.seed) if config.seed is not None else None
    session = GameSession(AsyncioScheduler(), points=config.points, factory=CircleFactory(rng=rng))
    session.set_play_area(config.area_width, config.area_height or area_height(config.points))
    app.state.session = session
    logger.info("Session ready with %d points", config.points)
    try:
        yield
    finally:
        session.close()


app = FastAPI(title="Clear Circles API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=DEFAULT_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class CircleView(BaseModel):
    """One circle as the page draws it."""

    id: str
    x: float
    y: float
    number: int
    clicked: bool
    wrong: bool
    color: str
    text_color: str
    opacity: float
    z_index: int
    countdown: str | None = None


class SessionView(BaseModel):
    """Everything the page needs to render the session."""

    points: int
    min_points: int = MIN_POINTS
    elapsed: float
    playing: bool
    auto_play: bool
    score: int
    status: str
    validation_error: str
    epoch: int
    wrong_circle_id: str | None = None
    title: str
    tone: str
    next_number: int
    area_width: float | None = None
    area_height: float | None = None
    circles: list[CircleView]


class PointsRequest(BaseModel):
    """Request body for changing the target count."""

    points: int

    @field_validator("points")
    @classmethod
    def validate_points(cls, v: int) -> int:
        return _check_points(v)


class AreaRequest(BaseModel):
    """Request body carrying the play area's bounding size in pixels."""

    width: float
    height: float

    @field_validator("width", "height")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"area dimensions must be positive, got {v}")
        return v


class ClickResponse(BaseModel):
    """Outcome of a manual click and the session after it."""

    result: Literal["correct", "wrong", "ignored"]
    session: SessionView


def _get_session(request: Request) -> GameSession:
    return request.app.state.session


def session_view(session: GameSession) -> SessionView:
    """Snapshot the session plus display attributes of every circle."""
    state = session.state
    now = session.scheduler.now()
    circles = sorted(session.circles, key=lambda c: c.number)
    title, tone = headline(state.status)
    area = session.engine.factory.area
    return SessionView(
        points=state.points,
        elapsed=state.elapsed,
        playing=state.is_playing,
        auto_play=state.auto_play,
        score=state.score,
        status=state.status.value,
        validation_error=state.validation_error,
        epoch=state.epoch,
        wrong_circle_id=state.wrong_circle_id,
        title=title,
        tone=tone,
        next_number=next_number(circles, state.is_playing, state.points),
        area_width=area.width if area else None,
        area_height=area.height if area else None,
        circles=[
            CircleView(
                id=c.id,
                x=c.x,
                y=c.y,
                number=c.number,
                clicked=c.clicked,
                wrong=c.wrong,
                color=circle_color(c.clicked, c.wrong),
                text_color=text_color(c),
                opacity=circle_opacity(c.clicked),
                z_index=z_index(c.number),
                countdown=countdown_label(c, now),
            )
            for c in circles
        ],
    )


@app.get("/api/session", response_model=SessionView)
async def get_session(request: Request) -> SessionView:
    """Current session state and circles."""
    return session_view(_get_session(request))


@app.post("/api/session/points", response_model=SessionView)
async def set_points(req: PointsRequest, request: Request) -> SessionView:
    """Change the target count (not allowed mid-game)."""
    session = _get_session(request)
    if not session.configure(req.points):
        raise HTTPException(status_code=409, detail="Cannot change points while playing")
    return session_view(session)


@app.post("/api/session/play", response_model=SessionView)
async def play(request: Request) -> SessionView:
    """Start playing; a too-small target count shows up as validation_error."""
    session = _get_session(request)
    session.play()
    return session_view(session)


@app.post("/api/session/restart", response_model=SessionView)
async def restart(request: Request) -> SessionView:
    """Reset to idle now; play resumes after the grace delay."""
    session = _get_session(request)
    session.restart()
    return session_view(session)


@app.post("/api/session/autoplay", response_model=SessionView)
async def toggle_auto_play(request: Request) -> SessionView:
    session = _get_session(request)
    session.toggle_auto_play()
    return session_view(session)


@app.post("/api/session/click/{circle_id}", response_model=ClickResponse)
async def click(circle_id: str, request: Request) -> ClickResponse:
    """Click a circle. Unknown or already-resolved ids are ignored, not errors."""
    session = _get_session(request)
    outcome = session.click(circle_id)
    result: Literal["correct", "wrong", "ignored"]
    if outcome is None:
        result = "ignored"
    elif outcome:
        result = "correct"
    else:
        result = "wrong"
    return ClickResponse(result=result, session=session_view(session))


@app.post("/api/session/area", response_model=SessionView)
async def set_area(req: AreaRequest, request: Request) -> SessionView:
    session = _get_session(request)
    session.set_play_area(req.width, req.height)
    return session_view(session)


@app.get("/api/session/screenshot")
async def screenshot(request: Request) -> Response:
    """PNG of the current field."""
    session = _get_session(request)
    area = session.engine.factory.area
    width = int(area.width) if area else DEFAULT_AREA_WIDTH
    height = int(area.height) if area else area_height(session.state.points)
    b64 = render_field_screenshot(session.circles, session.scheduler.now(), width, height)
    return Response(content=base64.b64decode(b64), media_type="image/png")


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}
