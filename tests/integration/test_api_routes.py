"""Integration tests for the API routes against a mocked network."""

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from tunelight.exceptions import MediaAccessException
from tunelight.main import app


class FakeNetwork:
    """MockTransport handler standing in for Spotify, the image CDN and WLED."""

    def __init__(self, currently_playing, image_bytes):
        self.currently_playing = currently_playing
        self.image_bytes = image_bytes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "accounts.spotify.com":
            return httpx.Response(200, json={"access_token": "live-token", "token_type": "Bearer", "expires_in": 3600})
        if request.url.host == "api.spotify.com":
            return httpx.Response(200, json=self.currently_playing)
        if request.url.host == "i.scdn.co":
            return httpx.Response(200, content=self.image_bytes, headers={"content-type": "image/png"})
        if request.url.path == "/json/state":
            return httpx.Response(200, json={"success": True})
        return httpx.Response(404)

    def sent_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]


@pytest.fixture
def network(mock_currently_playing_response, make_image_bytes):
    # Three red stripes to one green
    image = make_image_bytes([(255, 0, 0), (255, 0, 0), (255, 0, 0), (0, 255, 0)])
    return FakeNetwork(mock_currently_playing_response, image)


@pytest.fixture
def client(network, monkeypatch, reset_app_storage):
    """Test client whose shared HTTP client talks to the fake network."""
    monkeypatch.setattr(
        "tunelight.core.lifespan.create_http_client",
        lambda settings: httpx.AsyncClient(transport=httpx.MockTransport(network)),
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def logged_in(client):
    client.get("/auth/login", follow_redirects=False)
    response = client.get("/auth/callback", params={"code": "auth-code"}, follow_redirects=False)
    assert response.status_code == 303
    return client


# Health


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_ready_is_degraded_before_login(client):
    response = client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["spotify_auth"] == "not_authenticated"
    assert data["checks"]["spectrum"] == "stopped"


# Login


def test_index_shows_login_view(client):
    response = client.get("/")

    assert response.status_code == 200
    assert 'id="login-view"' in response.text
    assert 'id="main-view"' not in response.text


def test_login_redirects_to_spotify(client):
    response = client.get("/auth/login", follow_redirects=False)

    assert response.status_code == 307
    location = urlparse(response.headers["location"])
    params = parse_qs(location.query)
    assert location.netloc == "accounts.spotify.com"
    assert params["code_challenge_method"] == ["S256"]
    assert params["response_type"] == ["code"]


def test_callback_logs_in_and_shows_main_view(logged_in, network):
    response = logged_in.get("/")

    assert 'id="main-view"' in response.text
    token_call = network.sent_to("accounts.spotify.com")[0]
    form = parse_qs(token_call.content.decode())
    assert form["grant_type"] == ["authorization_code"]
    assert form["code"] == ["auth-code"]
    assert len(form["code_verifier"][0]) == 128

    ready = logged_in.get("/health/ready").json()
    assert ready["status"] == "ready"
    assert ready["checks"]["polling"] == "running"


def test_callback_error_is_shown_on_login_view(client, network):
    client.get("/auth/login", follow_redirects=False)

    response = client.get("/auth/callback", params={"error": "access_denied"}, follow_redirects=False)
    page = client.get("/")

    assert response.status_code == 303
    assert response.headers["location"] == "/"
    assert "Spotify authentication failed: access_denied" in page.text
    assert network.sent_to("accounts.spotify.com") == []


def test_callback_without_login_reports_lost_session(client):
    client.get("/auth/callback", params={"code": "stray"}, follow_redirects=False)

    page = client.get("/")

    assert "Authentication session error. Please try logging in again." in page.text


# Playback and palette


def test_refresh_requires_login(client):
    response = client.post("/api/playback/refresh")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "TOKEN_EXPIRED_OR_REJECTED"


def test_refresh_html_asks_for_page_reload(client):
    response = client.post("/api/playback/refresh", params={"format": "html"})

    assert response.status_code == 200
    assert response.headers["HX-Refresh"] == "true"


def test_refresh_returns_now_playing_and_palette(logged_in):
    response = logged_in.post("/api/playback/refresh")

    assert response.status_code == 200
    state = response.json()["state"]
    assert state["track_name"] == "Test Song"
    assert state["artwork_url"] == "https://i.scdn.co/image/large.jpg"

    palette = logged_in.get("/api/palette").json()
    assert palette["status"] == ""
    assert palette["palette"]["swatches"][0]["hex"] == "#ff0000"

    tile = logged_in.get("/api/playback/now-playing", params={"format": "html"})
    assert "Test Song" in tile.text
    assert "Test Artist, Second Artist" in tile.text


# Light


def test_device_target_round_trip(client):
    response = client.put("/api/light/target", json={"ip": "  192.168.1.50 "})

    assert response.status_code == 200
    assert response.json() == {"ip": "192.168.1.50"}
    assert client.get("/api/light/target").json() == {"ip": "192.168.1.50"}


def test_send_without_palette(client, network):
    client.put("/api/light/target", json={"ip": "192.168.1.50"})

    response = client.post("/api/light/send")

    assert response.json() == {"message": "No colors extracted yet.", "level": "warning"}
    assert not any(r.url.path == "/json/state" for r in network.requests)


def test_send_without_ip(logged_in, network):
    logged_in.post("/api/playback/refresh")

    response = logged_in.post("/api/light/send")

    assert response.json()["message"] == "WLED IP not set."
    assert not any(r.url.path == "/json/state" for r in network.requests)


def test_send_dispatches_primary_colour(logged_in, network):
    logged_in.post("/api/playback/refresh")
    logged_in.put("/api/light/target", json={"ip": "192.168.1.50"})

    response = logged_in.post("/api/light/send")

    assert response.json()["level"] == "ok"
    wled = network.sent_to("192.168.1.50")
    assert len(wled) == 1
    assert str(wled[0].url) == "http://192.168.1.50/json/state"
    assert json.loads(wled[0].content) == {"on": True, "seg": [{"col": [[255, 0, 0]]}]}

    status = logged_in.get("/api/light/status", params={"format": "html"})
    assert "Command sent to WLED" in status.text


def test_light_tile_without_ip(client):
    response = client.get("/api/light/status", params={"format": "html"})

    assert "WLED IP not set." in response.text


# Audio


class DeniedMicrophone:
    def open(self):
        raise MediaAccessException("Could not access microphone: permission denied")

    def read_latest(self, n):
        raise AssertionError("not opened")

    def disconnect(self):
        pass

    def stop(self):
        pass


def test_audio_start_without_microphone(client):
    client.app.state.orchestrator.analyzer._input = DeniedMicrophone()

    response = client.post("/api/audio/start")

    assert response.status_code == 503
    error = response.json()["error"]
    assert error["code"] == "MEDIA_ACCESS_ERROR"
    assert error["message"] == "Could not access microphone: permission denied"
    assert client.get("/api/audio/spectrum").json()["state"] == "stopped"


def test_audio_toggle_html_shows_microphone_error(client):
    client.app.state.orchestrator.analyzer._input = DeniedMicrophone()

    response = client.post("/api/audio/toggle", params={"format": "html"})

    assert response.status_code == 200
    assert "permission denied" in response.text


def test_spectrum_is_empty_while_stopped(client):
    data = client.get("/api/audio/spectrum").json()

    assert data["state"] == "stopped"
    assert data["bars"] == []
    assert data["width"] == 512
