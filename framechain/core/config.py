"""
FrameChain Configuration Management

Dataclass configuration loaded from JSON, with a process-wide instance.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import MAX_VIDEO_CONCURRENCY, MIN_VIDEO_CONCURRENCY
from .exceptions import ConfigurationError, InvalidConfigError


@dataclass
class GatewayConfig:
    """Connection settings for the model gateway service."""
    base_url: str = "http://localhost:8080/v1"
    api_key_env: str = "FRAMECHAIN_GATEWAY_KEY"
    timeout: float = 60.0

    @classmethod
    def from_dict(cls, data: dict) -> 'GatewayConfig':
        return cls(
            base_url=data.get('base_url', cls.base_url),
            api_key_env=data.get('api_key_env', cls.api_key_env),
            timeout=float(data.get('timeout', cls.timeout))
        )


@dataclass
class PollingPolicy:
    """How long and how often to poll an asynchronous gateway task."""
    interval_seconds: float
    max_wait_seconds: float
    max_network_errors: int = 5

    @classmethod
    def from_dict(cls, data: dict, default: 'PollingPolicy') -> 'PollingPolicy':
        policy = cls(
            interval_seconds=float(data.get('interval_seconds', default.interval_seconds)),
            max_wait_seconds=float(data.get('max_wait_seconds', default.max_wait_seconds)),
            max_network_errors=int(data.get('max_network_errors', default.max_network_errors))
        )
        if policy.interval_seconds <= 0 or policy.max_wait_seconds <= 0:
            raise InvalidConfigError("Polling interval and max wait must be positive", data)
        return policy


def _text_policy() -> PollingPolicy:
    return PollingPolicy(interval_seconds=2.0, max_wait_seconds=180.0)


def _image_policy() -> PollingPolicy:
    return PollingPolicy(interval_seconds=3.0, max_wait_seconds=300.0)


def _video_policy() -> PollingPolicy:
    return PollingPolicy(interval_seconds=5.0, max_wait_seconds=3600.0)


@dataclass
class PollingConfig:
    """Polling policies per media kind."""
    text: PollingPolicy = field(default_factory=_text_policy)
    image: PollingPolicy = field(default_factory=_image_policy)
    video: PollingPolicy = field(default_factory=_video_policy)

    @classmethod
    def from_dict(cls, data: dict) -> 'PollingConfig':
        config = cls()
        config.text = PollingPolicy.from_dict(data.get('text', {}), config.text)
        config.image = PollingPolicy.from_dict(data.get('image', {}), config.image)
        config.video = PollingPolicy.from_dict(data.get('video', {}), config.video)
        return config


@dataclass
class GenerationConfig:
    """Frame and video generation defaults."""
    width: int = 1024
    height: int = 576
    action_duration: int = 3
    static_duration: int = 2
    max_video_concurrency: int = MAX_VIDEO_CONCURRENCY
    use_ai_reference_selection: bool = True
    max_references: int = 4
    analysis_think: bool = True

    def clamp_concurrency(self, requested: Optional[int]) -> int:
        """Clamp a requested pool size into the supported range."""
        value = requested if requested else self.max_video_concurrency
        return max(MIN_VIDEO_CONCURRENCY, min(int(value), MAX_VIDEO_CONCURRENCY))


@dataclass
class ModelDefaults:
    """Model identifiers used when a request does not name one."""
    text_model: Optional[str] = None
    image_model: Optional[str] = None
    video_model: Optional[str] = None
    repair_model: Optional[str] = None


@dataclass
class StorageConfig:
    """Where persisted frames, plates and videos are written."""
    root_dir: Path = field(default_factory=lambda: Path("media"))
    public_base_url: str = "http://localhost:8000/media"


@dataclass
class FrameChainConfig:
    """Main configuration for FrameChain."""

    project_name: str = "FrameChain"
    version: str = "1.0.0"

    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    models: ModelDefaults = field(default_factory=ModelDefaults)
    storage: StorageConfig = field(default_factory=StorageConfig)

    verbose_logging: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> 'FrameChainConfig':
        """Create FrameChainConfig from dictionary."""
        config = cls()

        config.project_name = data.get('project_name', config.project_name)
        config.version = data.get('version', config.version)
        config.verbose_logging = data.get('verbose_logging', config.verbose_logging)

        if 'gateway' in data:
            config.gateway = GatewayConfig.from_dict(data['gateway'])

        if 'polling' in data:
            config.polling = PollingConfig.from_dict(data['polling'])

        if 'generation' in data:
            gen = data['generation']
            defaults = GenerationConfig()
            config.generation = GenerationConfig(
                width=gen.get('width', defaults.width),
                height=gen.get('height', defaults.height),
                action_duration=gen.get('action_duration', defaults.action_duration),
                static_duration=gen.get('static_duration', defaults.static_duration),
                max_video_concurrency=gen.get('max_video_concurrency', defaults.max_video_concurrency),
                use_ai_reference_selection=gen.get(
                    'use_ai_reference_selection', defaults.use_ai_reference_selection
                ),
                max_references=gen.get('max_references', defaults.max_references),
                analysis_think=gen.get('analysis_think', defaults.analysis_think)
            )
            if config.generation.width <= 0 or config.generation.height <= 0:
                raise InvalidConfigError("Frame dimensions must be positive", gen)

        if 'models' in data:
            models = data['models']
            config.models = ModelDefaults(
                text_model=models.get('text_model'),
                image_model=models.get('image_model'),
                video_model=models.get('video_model'),
                repair_model=models.get('repair_model')
            )

        if 'storage' in data:
            storage = data['storage']
            config.storage = StorageConfig(
                root_dir=Path(storage.get('root_dir', 'media')),
                public_base_url=storage.get('public_base_url', config.storage.public_base_url)
            )

        return config

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['storage']['root_dir'] = str(self.storage.root_dir)
        return data


def load_config(config_path: Path = None) -> FrameChainConfig:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to configuration file. If None, uses default.

    Returns:
        Loaded FrameChainConfig instance
    """
    if config_path is None:
        config_path = Path("config/framechain_config.json")
    config_path = Path(config_path)

    if not config_path.exists():
        return FrameChainConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidConfigError(f"Invalid JSON in config file: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load config: {e}")

    return FrameChainConfig.from_dict(data)


_config: Optional[FrameChainConfig] = None


def get_config() -> FrameChainConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[FrameChainConfig]) -> None:
    """Set (or with None, reset) the global configuration instance."""
    global _config
    _config = config
