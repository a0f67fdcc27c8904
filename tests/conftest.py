"""
Pytest Configuration and Fixtures

Shared fixtures for all tests: an in-memory Kitchen storyboard, scripted
text and media clients, and fast polling policies.
"""

import json
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from framechain.core.config import FrameChainConfig, ModelDefaults, PollingConfig, PollingPolicy, set_config
from framechain.gateway.text import TextResponse
from framechain.storage.locks import ScriptLockRegistry
from framechain.storage.object_storage import PassthroughObjectStorage
from framechain.storage.store import InMemoryStoryboardStore
from framechain.storyboard.models import Character, ScenePlate, Shot

PROJECT_ID = "proj-1"
SCRIPT_ID = "script-1"


class ScriptedTextClient:
    """
    Text client that answers by prompt kind and records every call.

    Reference selection picks the first offered ids unless `selection` is set.
    """

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.selection: Optional[List[str]] = None
        self.scene_state_replies: List[str] = []
        self.storyboard_reply = "[]"
        self.frame_prompt = "cinematic still, warm morning light"
        self.camera_run = "slow dolly in from a medium shot, settling on a close-up"

    def kinds(self) -> List[str]:
        return [call["kind"] for call in self.calls]

    async def generate(self, prompt, model, temperature=None, max_tokens=None, think=None, system_prompt=""):
        kind, text = self._answer(prompt)
        self.calls.append({
            "kind": kind,
            "prompt": prompt,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "think": think,
        })
        return TextResponse(text=text, model=model, finish_reason="stop")

    def _answer(self, prompt: str):
        if "choosing reference images" in prompt:
            offered = re.findall(r'ID: "([a-z_]+)"', prompt)
            chosen = self.selection or offered[:2]
            return "selector", json.dumps({"selected": chosen, "reasoning": "continuity first"})
        if "script supervisor" in prompt:
            reply = self.scene_state_replies.pop(0) if self.scene_state_replies else "[]"
            return "scene_state", reply
        if "storyboard artist" in prompt:
            return "storyboard", self.storyboard_reply
        if "EMPTY shot of this location" in prompt:
            return "plate", "empty scene, no people, no characters, no figures, shattered cup on the tiles"
        if "director of photography" in prompt:
            return "camera_run", self.camera_run
        if "image-to-video" in prompt:
            return "video", "slow push-in as the character turns"
        return "frame", self.frame_prompt


class FakeMedia:
    """Media generator returning predictable URLs."""

    def __init__(self):
        self.images: List[Dict[str, Any]] = []
        self.videos: List[Dict[str, Any]] = []

    async def generate_image(self, model, prompt, reference_urls=None, width=1024, height=576, label="image"):
        self.images.append({
            "model": model,
            "prompt": prompt,
            "reference_urls": list(reference_urls or []),
            "width": width,
            "height": height,
            "label": label,
        })
        return f"https://cdn.test/{label}-{len(self.images)}.png"

    async def generate_video(self, model, prompt, frame_urls, duration, label="video"):
        self.videos.append({
            "model": model,
            "prompt": prompt,
            "frame_urls": list(frame_urls),
            "duration": duration,
            "label": label,
        })
        return f"https://cdn.test/{label}.mp4"


@pytest.fixture(autouse=True)
def reset_singletons():
    """Fresh lock registry and config for every test."""
    ScriptLockRegistry.reset()
    set_config(None)
    yield
    ScriptLockRegistry.reset()
    set_config(None)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def fast_polling() -> PollingConfig:
    """Polling policies measured in milliseconds."""
    policy = PollingPolicy(interval_seconds=0.01, max_wait_seconds=1.0, max_network_errors=3)
    return PollingConfig(text=policy, image=policy, video=policy)


@pytest.fixture
def test_config(fast_polling) -> FrameChainConfig:
    """Config with model defaults and fast polling."""
    return FrameChainConfig(
        polling=fast_polling,
        models=ModelDefaults(text_model="test-text", image_model="test-image", video_model="test-video"),
    )


@pytest.fixture
def make_shot():
    """Factory for shots of the test script."""
    def _make(index: int, description: str = "", location: str = "Kitchen",
              has_action: bool = False, characters=("Mia",), **attributes) -> Shot:
        return Shot(
            id=f"shot-{index}",
            script_id=SCRIPT_ID,
            project_id=PROJECT_ID,
            index=index,
            description=description or f"Shot {index}",
            attributes={
                "location": location,
                "has_action": has_action,
                "characters": list(characters),
                "shot_type": "medium",
                **attributes,
            },
        )
    return _make


@pytest.fixture
def mia() -> Character:
    return Character(
        id="char-mia",
        project_id=PROJECT_ID,
        name="Mia",
        appearance="Short dark hair, green cardigan",
        personality="Quiet, observant",
        description="A barista in her twenties",
        front_view_url="https://assets.test/mia-front.png",
        side_view_url="https://assets.test/mia-side.png",
    )


@pytest.fixture
def kitchen() -> ScenePlate:
    return ScenePlate(
        id="scene-kitchen",
        project_id=PROJECT_ID,
        name="Kitchen",
        description="A small apartment kitchen",
        environment="White tiles, wooden counter, window over the sink",
        lighting="Soft morning light",
        mood="Calm",
        image_url="https://assets.test/kitchen-a.png",
        reverse_image_url="https://assets.test/kitchen-b.png",
        generation_prompt="Camera faces the window over the sink, counter on the left",
    )


@pytest.fixture
def bedroom() -> ScenePlate:
    return ScenePlate(
        id="scene-bedroom",
        project_id=PROJECT_ID,
        name="Bedroom",
        description="A narrow bedroom",
        environment="Unmade bed, bookshelf",
        lighting="Dim lamp light",
        mood="Tired",
        image_url="https://assets.test/bedroom-a.png",
    )


@pytest.fixture
def kitchen_shots(make_shot) -> List[Shot]:
    """Pour coffee, drop the cup, stare at the mess."""
    return [
        make_shot(0, "Mia pours coffee at the counter"),
        make_shot(1, "Mia drops the cup and it shatters on the floor", has_action=True),
        make_shot(2, "Mia stares at the mess on the floor"),
    ]


@pytest.fixture
def store(mia, kitchen, bedroom, kitchen_shots) -> InMemoryStoryboardStore:
    """Store seeded with the Kitchen script."""
    store = InMemoryStoryboardStore()
    store.add_character(mia)
    store.add_scene(kitchen)
    store.add_scene(bedroom)
    store.set_visual_style(PROJECT_ID, "Muted film look, 35mm grain")
    for shot in kitchen_shots:
        store.add_shot(shot)
    return store


@pytest.fixture
def text_client() -> ScriptedTextClient:
    return ScriptedTextClient()


@pytest.fixture
def media() -> FakeMedia:
    return FakeMedia()


@pytest.fixture
def object_storage() -> PassthroughObjectStorage:
    return PassthroughObjectStorage()


@pytest.fixture
def lock_registry() -> ScriptLockRegistry:
    return ScriptLockRegistry.get_instance()
