"""Host settings loaded from the environment (PACKBATTLE_*) or a .env file."""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PACKBATTLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Pack Battle"

    # Tick loop
    tick_ms: int = 16
    time_compression: float = 1.0
    autostart: bool = True

    # Auto-resolve defaults
    auto_resolve_start_distance: float = 300.0
    auto_resolve_time_step_ms: int = 50
    auto_resolve_max_duration_ms: int = 90_000

    # Vite dev servers
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:5174",
        "http://localhost:5175",
    ]


settings = Settings()
