"""
Tests for FrameChain API

Tests for framechain/api/main.py, scripts.py and shots.py
"""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from framechain.core.config import FrameChainConfig
from framechain.core.exceptions import (
    ChainLockedError, GatewayError, GatewayTimeoutError, MissingFieldError, ParseError, ShotNotFoundError,
)
from framechain.api.deps import FrameChainServices, set_services
from framechain.api.main import app, status_for
from framechain.parsing.recovery import TextRecoveryCascade

SCRIPT_ID = "script-1"

KITCHEN_REPLY = json.dumps([
    {"order": 1, "scene_state": "normal", "environment_change": "none"},
    {"order": 2, "scene_state": "modified", "environment_change": "Broken cup on the floor"},
    {"order": 3, "scene_state": "normal", "environment_change": "none"},
])


@pytest.fixture
def services(store, text_client, media, object_storage, lock_registry, test_config):
    services = FrameChainServices(
        config=test_config,
        store=store,
        gateway=AsyncMock(),
        text_client=text_client,
        media=media,
        object_storage=object_storage,
        cascade=TextRecoveryCascade(),
        locks=lock_registry,
    )
    set_services(services)
    yield services
    set_services(None)


@pytest.fixture
def client(services):
    with TestClient(app) as client:
        yield client


class TestStatusMapping:
    """Tests for status_for."""

    def test_error_statuses(self):
        """Test error types map onto HTTP statuses."""
        assert status_for(ShotNotFoundError("x")) == 404
        assert status_for(ChainLockedError("script-1", "frame_batch")) == 409
        assert status_for(MissingFieldError("Character", "Mia", "appearance")) == 422
        assert status_for(GatewayTimeoutError("slow")) == 504
        assert status_for(GatewayError("down")) == 502
        assert status_for(ParseError("garbled")) == 502


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        """Test the health check responds."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestScriptRoutes:
    """Tests for script-level routes."""

    def test_scene_state(self, client, text_client, store):
        """Test scene state analysis returns a summary with updated entries."""
        text_client.scene_state_replies = [KITCHEN_REPLY]

        response = client.post(f"/api/scripts/{SCRIPT_ID}/scene-state", json={})

        assert response.status_code == 200
        body = response.json()
        assert body["completed"] == 3
        assert [entry["scene_state"] for entry in body["results"]] == ["normal", "modified", "inherit"]

    def test_frame_batch(self, client):
        """Test the frame chain runs every shot."""
        response = client.post(f"/api/scripts/{SCRIPT_ID}/frames/batch", json={})

        assert response.status_code == 200
        body = response.json()
        assert (body["total"], body["completed"], body["failed"]) == (3, 3, 0)

    def test_video_batch_reports_missing_frames(self, client):
        """Test shots without frames fail individually in the video batch."""
        response = client.post(f"/api/scripts/{SCRIPT_ID}/videos/batch", json={"max_concurrency": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["failed"] == 3
        assert {entry["error_type"] for entry in body["results"]} == {"MissingFramesError"}

    def test_storyboard(self, client, text_client):
        """Test a storyboard replaces the script's shots."""
        text_client.storyboard_reply = json.dumps([
            {"order": 1, "description": "Mia opens the door", "location": "Bedroom", "characters": ["Mia"]},
        ])

        response = client.post(
            f"/api/scripts/{SCRIPT_ID}/storyboard",
            json={"project_id": "proj-1", "script_text": "Mia opens the bedroom door."},
        )

        assert response.status_code == 200
        shots = response.json()["shots"]
        assert len(shots) == 1
        assert shots[0]["attributes"]["location"] == "Bedroom"

    def test_storyboard_requires_text(self, client):
        """Test empty script text fails request validation."""
        response = client.post(
            f"/api/scripts/{SCRIPT_ID}/storyboard", json={"project_id": "proj-1", "script_text": ""}
        )

        assert response.status_code == 422

    def test_storyboard_blank_text(self, client, text_client):
        """Test whitespace-only script text is unprocessable and calls no model."""
        response = client.post(
            f"/api/scripts/{SCRIPT_ID}/storyboard", json={"project_id": "proj-1", "script_text": "   "}
        )

        assert response.status_code == 422
        assert response.json()["error"] == "DataIntegrityError"
        assert text_client.calls == []

    def test_locked_script(self, client, lock_registry):
        """Test a second chain on a busy script is a conflict."""
        lock_registry.acquire(SCRIPT_ID, "video_batch")

        response = client.post(f"/api/scripts/{SCRIPT_ID}/frames/batch", json={})

        assert response.status_code == 409
        assert response.json()["error"] == "ChainLockedError"

    def test_empty_script(self, client):
        """Test an unknown script is not found."""
        response = client.post("/api/scripts/script-missing/frames/batch", json={})

        assert response.status_code == 404

    def test_missing_text_model(self, client, services):
        """Test a run with no text model is a configuration error."""
        services.config = FrameChainConfig()

        response = client.post(f"/api/scripts/{SCRIPT_ID}/scene-state", json={})

        assert response.status_code == 422
        assert response.json()["error"] == "MissingModelError"


class TestShotRoutes:
    """Tests for shot-level routes."""

    def test_shot_frames(self, client, store):
        """Test one shot's frames are generated."""
        response = client.post("/api/shots/shot-0/frames", json={})

        assert response.status_code == 200
        assert response.json()["first_frame_url"].startswith("https://cdn.test/")

    def test_unknown_shot(self, client):
        """Test an unknown shot is not found."""
        response = client.post("/api/shots/shot-99/frames", json={})

        assert response.status_code == 404
        assert response.json()["error"] == "ShotNotFoundError"

    def test_continuity_error(self, client):
        """Test a shot with no anchored predecessor is unprocessable."""
        response = client.post("/api/shots/shot-2/frames", json={})

        assert response.status_code == 422
        assert response.json()["error"] == "ContinuityError"

    def test_shot_video(self, client):
        """Test a shot video is generated once its frame exists."""
        assert client.post("/api/shots/shot-0/frames", json={}).status_code == 200

        response = client.post("/api/shots/shot-0/video", json={"duration": 4})

        assert response.status_code == 200
        body = response.json()
        assert body["duration"] == 4
        assert body["video_url"].endswith(".mp4")

    @pytest.mark.parametrize("route", ["frames", "video", "camera-run"])
    def test_shot_routes_respect_script_lock(self, client, lock_registry, media, text_client, route):
        """Test a single shot is not generated while a chain holds its script."""
        lock_registry.acquire(SCRIPT_ID, "frame_batch")

        response = client.post(f"/api/shots/shot-0/{route}", json={})

        assert response.status_code == 409
        assert response.json()["error"] == "ChainLockedError"
        assert lock_registry.holder(SCRIPT_ID) == "frame_batch"
        assert media.images == []
        assert text_client.calls == []

    def test_shot_route_releases_lock(self, client, lock_registry):
        """Test the script lock is free again after a shot route returns."""
        assert client.post("/api/shots/shot-0/frames", json={}).status_code == 200

        assert lock_registry.holder(SCRIPT_ID) is None

    def test_camera_run(self, client):
        """Test a camera run is written and stored on the shot."""
        response = client.post("/api/shots/shot-1/camera-run", json={"think": False})

        assert response.status_code == 200
        body = response.json()
        assert body["camera_run_prompt"] == "slow dolly in from a medium shot, settling on a close-up"
        assert body["duration"] == 3
        assert body["shot_type"] == "medium"

    def test_camera_run_unknown_shot(self, client):
        """Test a camera run for an unknown shot is not found."""
        response = client.post("/api/shots/shot-99/camera-run", json={})

        assert response.status_code == 404
