"""
API Server Configuration

Pydantic settings for the FastAPI server.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Server settings, read from FRAMECHAIN_* environment variables or .env."""

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    # Pipeline
    config_path: str = Field(default="config/framechain_config.json")
    store_path: Optional[str] = Field(default="data/storyboard.json")

    class Config:
        env_prefix = "FRAMECHAIN_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
