"""
API Dependencies

Builds the pipeline services once per process and hands them to route
handlers.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from framechain.core.config import FrameChainConfig, load_config, set_config
from framechain.core.exceptions import MissingModelError
from framechain.core.logging_config import get_logger
from framechain.gateway.base import ModelGateway
from framechain.gateway.http_gateway import HttpModelGateway
from framechain.gateway.media import MediaGenerator
from framechain.gateway.text import TextModelClient
from framechain.parsing.recovery import TextRecoveryCascade
from framechain.pipelines.batch_frames import SequentialFrameBatch
from framechain.pipelines.batch_videos import ConcurrentVideoBatch
from framechain.pipelines.camera_run import CameraRunGenerator
from framechain.pipelines.frame_generation import FrameGenerationEngine
from framechain.pipelines.reference_selector import ReferenceSelector
from framechain.pipelines.scene_state import SceneStateAnalyzer
from framechain.pipelines.storyboard_generation import StoryboardGenerator
from framechain.pipelines.video_generation import VideoGenerator
from framechain.storage.locks import ScriptLockRegistry
from framechain.storage.object_storage import LocalObjectStorage, ObjectStorage
from framechain.storage.store import InMemoryStoryboardStore, StoryboardStore

from .settings import Settings

logger = get_logger("api.deps")


@dataclass
class FrameChainServices:
    """Shared collaborators; pipelines are built per request."""
    config: FrameChainConfig
    store: StoryboardStore
    gateway: ModelGateway
    text_client: TextModelClient
    media: MediaGenerator
    object_storage: ObjectStorage
    cascade: TextRecoveryCascade
    locks: ScriptLockRegistry
    store_path: Optional[Path] = None

    def frame_engine(self) -> FrameGenerationEngine:
        return FrameGenerationEngine(
            self.store, self.text_client, self.media, self.object_storage,
            selector=ReferenceSelector(self.text_client, self.cascade),
            config=self.config,
        )

    def video_generator(self) -> VideoGenerator:
        return VideoGenerator(self.store, self.text_client, self.media, self.object_storage, config=self.config)

    def camera_run_generator(self) -> CameraRunGenerator:
        return CameraRunGenerator(self.store, self.text_client, config=self.config)

    def storyboard_generator(self) -> StoryboardGenerator:
        return StoryboardGenerator(self.store, self.text_client, self.cascade, self.locks)

    def scene_state_analyzer(self) -> SceneStateAnalyzer:
        return SceneStateAnalyzer(
            self.store, self.text_client, self.cascade, self.locks,
            think=self.config.generation.analysis_think,
        )

    def frame_batch(self) -> SequentialFrameBatch:
        return SequentialFrameBatch(self.store, self.frame_engine(), self.locks)

    def video_batch(self) -> ConcurrentVideoBatch:
        return ConcurrentVideoBatch(self.store, self.video_generator(), self.locks, self.config)

    def text_model(self, requested: Optional[str]) -> str:
        """Requested text model, else the configured default."""
        model = requested or self.config.models.text_model
        if not model:
            raise MissingModelError("text")
        return model

    def save_store(self) -> None:
        """Write the store snapshot, when the store is snapshot-backed."""
        if self.store_path is not None and isinstance(self.store, InMemoryStoryboardStore):
            self.store.save(self.store_path)

    async def aclose(self) -> None:
        self.save_store()
        await self.gateway.aclose()


def build_services(settings: Settings) -> FrameChainServices:
    """Wire the pipeline services from settings and the JSON config."""
    config = load_config(Path(settings.config_path))
    set_config(config)

    store_path = Path(settings.store_path) if settings.store_path else None
    store = InMemoryStoryboardStore.load(store_path) if store_path else InMemoryStoryboardStore()

    gateway = HttpModelGateway.from_config(config.gateway)
    text_client = TextModelClient(gateway, config.polling.text)
    cascade = TextRecoveryCascade(
        text_client,
        repair_model=config.models.repair_model or config.models.text_model,
    )
    services = FrameChainServices(
        config=config,
        store=store,
        gateway=gateway,
        text_client=text_client,
        media=MediaGenerator(gateway, config.polling),
        object_storage=LocalObjectStorage(config.storage.root_dir, config.storage.public_base_url),
        cascade=cascade,
        locks=ScriptLockRegistry.get_instance(),
        store_path=store_path,
    )
    logger.info(f"Services ready: gateway={config.gateway.base_url}, storage={config.storage.root_dir}")
    return services


_services: Optional[FrameChainServices] = None


def set_services(services: Optional[FrameChainServices]) -> None:
    """Install (or with None, clear) the process-wide services."""
    global _services
    _services = services


def get_services() -> FrameChainServices:
    """FastAPI dependency returning the installed services."""
    if _services is None:
        raise RuntimeError("FrameChain services are not initialized")
    return _services
