"""Tests for the FastAPI app and config loading."""

from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from clear_circles.game_state import MAX_POINTS, VALIDATION_MESSAGE
from clear_circles.main import (
    GameConfig,
    PointsRequest,
    _load_config_from_yaml,
    app,
)


@pytest.fixture
def client():
    """Test client with the lifespan (and so a fresh session) running."""
    with TestClient(app) as c:
        yield c


def _by_number(view):
    return {c["number"]: c for c in view["circles"]}


class TestHealth:
    """Test the health endpoint."""

    def test_health(self, client):
        """Test /health returns ok."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestSessionEndpoints:
    """Test the session lifecycle over HTTP."""

    def test_initial_session(self, client):
        """Test a fresh app starts idle with no circles."""
        data = client.get("/api/session").json()
        assert data["status"] == "idle"
        assert data["playing"] is False
        assert data["circles"] == []
        assert data["title"] == "LET'S PLAY"
        assert data["min_points"] == 5
        assert data["area_width"] == 800

    def test_play_below_minimum(self, client):
        """Test points=3 then play reports a validation error and stays idle."""
        assert client.post("/api/session/points", json={"points": 3}).status_code == 200
        data = client.post("/api/session/play").json()
        assert data["status"] == "idle"
        assert data["validation_error"] == VALIDATION_MESSAGE

    def test_play_populates(self, client):
        """Test play returns N circles with display attributes."""
        client.post("/api/session/points", json={"points": 6})
        data = client.post("/api/session/play").json()
        assert data["status"] == "playing"
        assert data["next_number"] == 1
        assert sorted(c["number"] for c in data["circles"]) == [1, 2, 3, 4, 5, 6]
        first = data["circles"][0]
        assert first["color"] == "default"
        assert first["text_color"] == "black"
        assert first["countdown"] is None
        assert first["z_index"] == 9999

    def test_correct_then_wrong_click(self, client):
        """Test a correct click scores and an out-of-order click ends the game."""
        circles = _by_number(client.post("/api/session/play").json())

        data = client.post(f"/api/session/click/{circles[1]['id']}").json()
        assert data["result"] == "correct"
        assert data["session"]["score"] == 1
        assert _by_number(data["session"])[1]["color"] == "clicked"
        assert _by_number(data["session"])[1]["countdown"] is not None

        data = client.post(f"/api/session/click/{circles[3]['id']}").json()
        assert data["result"] == "wrong"
        session = data["session"]
        assert session["status"] == "gameOver"
        assert session["title"] == "GAME OVER"
        assert session["wrong_circle_id"] == circles[3]["id"]
        assert _by_number(session)[3]["color"] == "wrong"
        assert session["score"] == 1

    def test_unknown_click_is_ignored(self, client):
        """Test a click on a missing circle is not an error."""
        client.post("/api/session/play")
        response = client.post("/api/session/click/does-not-exist")
        assert response.status_code == 200
        assert response.json()["result"] == "ignored"

    def test_points_locked_while_playing(self, client):
        """Test changing points mid-game is a conflict."""
        client.post("/api/session/play")
        response = client.post("/api/session/points", json={"points": 10})
        assert response.status_code == 409

    def test_negative_points_rejected(self, client):
        """Test negative points fail validation."""
        response = client.post("/api/session/points", json={"points": -1})
        assert response.status_code == 422

    def test_restart_goes_idle(self, client):
        """Test restart answers with an idle session and a new epoch."""
        client.post("/api/session/play")
        data = client.post("/api/session/restart").json()
        assert data["status"] == "idle"
        assert data["epoch"] == 1
        assert data["score"] == 0
        assert data["circles"] == []

    def test_auto_play_refused_while_idle(self, client):
        """Test the auto-play toggle does nothing before play."""
        data = client.post("/api/session/autoplay").json()
        assert data["auto_play"] is False
        data = client.post("/api/session/play").json()
        assert data["auto_play"] is False

    def test_points_above_maximum_rejected(self, client):
        """Test an oversized target count fails validation."""
        response = client.post("/api/session/points", json={"points": MAX_POINTS + 1})
        assert response.status_code == 422
        assert client.post("/api/session/points", json={"points": MAX_POINTS}).status_code == 200

    def test_toggle_auto_play(self, client):
        """Test the auto-play toggle flips the flag."""
        client.post("/api/session/play")
        assert client.post("/api/session/autoplay").json()["auto_play"] is True
        assert client.post("/api/session/autoplay").json()["auto_play"] is False

    def test_set_area(self, client):
        """Test new bounds are reported back and used for new circles."""
        data = client.post("/api/session/area", json={"width": 300, "height": 200}).json()
        assert data["area_width"] == 300
        assert data["area_height"] == 200
        data = client.post("/api/session/play").json()
        for c in data["circles"]:
            assert 0 <= c["x"] <= 240
            assert 0 <= c["y"] <= 140

    def test_invalid_area(self, client):
        """Test non-positive dimensions are rejected."""
        response = client.post("/api/session/area", json={"width": 0, "height": 200})
        assert response.status_code == 422

    def test_screenshot(self, client):
        """Test the screenshot endpoint returns a PNG of the area."""
        client.post("/api/session/play")
        response = client.get("/api/session/screenshot")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        img = Image.open(BytesIO(response.content))
        assert img.size == (800, 600)


class TestModels:
    """Test request models and config."""

    def test_points_request_validation(self):
        """Test PointsRequest rejects negatives."""
        assert PointsRequest(points=0).points == 0
        with pytest.raises(ValueError):
            PointsRequest(points=-5)

    def test_config_defaults(self):
        """Test GameConfig defaults."""
        config = GameConfig()
        assert config.points == 5
        assert config.area_width == 800
        assert config.area_height is None
        assert config.log_level == "INFO"

    def test_config_points_bounds(self):
        """Test config points must lie within 0..MAX_POINTS."""
        assert GameConfig(points=MAX_POINTS).points == MAX_POINTS
        with pytest.raises(ValueError):
            GameConfig(points=MAX_POINTS + 1)
        with pytest.raises(ValueError):
            GameConfig(points=-1)

    def test_config_log_level(self):
        """Test log levels are normalized and checked."""
        assert GameConfig(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValueError):
            GameConfig(log_level="chatty")


class TestLoadConfig:
    """Test YAML config loading."""

    def test_load_from_file(self, tmp_path):
        """Test values are read from YAML."""
        path = tmp_path / "game.yaml"
        path.write_text("points: 12\narea_width: 640\nseed: 3\n")
        config = _load_config_from_yaml(str(path))
        assert config.points == 12
        assert config.area_width == 640
        assert config.seed == 3

    def test_empty_file(self, tmp_path):
        """Test an empty YAML file gives defaults."""
        path = tmp_path / "game.yaml"
        path.write_text("")
        assert _load_config_from_yaml(str(path)) == GameConfig()

    def test_missing_named_file(self, tmp_path):
        """Test an explicitly named missing file is an error."""
        with pytest.raises(FileNotFoundError):
            _load_config_from_yaml(str(tmp_path / "nope.yaml"))

    def test_env_var(self, tmp_path, monkeypatch):
        """Test the config path can come from the environment."""
        path = tmp_path / "env.yaml"
        path.write_text("points: 9\n")
        monkeypatch.setenv("CLEAR_CIRCLES_CONFIG", str(path))
        assert _load_config_from_yaml().points == 9

    def test_missing_default_gives_defaults(self, tmp_path, monkeypatch):
        """Test no config file at the default path means defaults."""
        monkeypatch.delenv("CLEAR_CIRCLES_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        assert _load_config_from_yaml() == GameConfig()

    def test_bad_config_fails_at_startup(self, tmp_path, monkeypatch):
        """Test the config is read when the app starts, not when it is imported."""
        monkeypatch.setenv("CLEAR_CIRCLES_CONFIG", str(tmp_path / "missing.yaml"))
        with pytest.raises(FileNotFoundError):
            with TestClient(app):
                pass

    def test_lifespan_reads_config(self, tmp_path, monkeypatch):
        """Test the session is built from the config found at startup."""
        path = tmp_path / "game.yaml"
        path.write_text("points: 7\narea_width: 500\narea_height: 400\n")
        monkeypatch.setenv("CLEAR_CIRCLES_CONFIG", str(path))
        with TestClient(app) as c:
            data = c.get("/api/session").json()
        assert data["points"] == 7
        assert data["area_width"] == 500
        assert data["area_height"] == 400

    def test_non_mapping(self, tmp_path):
        """Test a YAML list is rejected."""
        path = tmp_path / "game.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            _load_config_from_yaml(str(path))
