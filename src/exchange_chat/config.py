from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Client core
    API_URL: str = "http://localhost:8000"
    WS_URL: str = "ws://localhost:8000/ws/chat"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    HISTORY_LIMIT: int = 200

    # Relay gateway
    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"

    CORS_ORIGINS: list[str] = ["*"]

    WS_HEARTBEAT_SECONDS: int = 30

    FANOUT_MODE: Literal["local", "redis"] = "local"
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PUBSUB_CHANNEL: str = "chat.fanout"

    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
