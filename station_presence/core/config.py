from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    # Storage: "memory" or "sql"
    storage_backend: str = Field("memory", alias="STORAGE_BACKEND")
    database_url: str = Field("sqlite+aiosqlite:///./station_presence.db", alias="DATABASE_URL")

    # Multi-station
    default_station_id: str = Field("default-station", alias="DEFAULT_STATION_ID")

    # Event lifecycle
    event_expiry_hours: float = Field(12, alias="EVENT_EXPIRY_HOURS")
    reactivate_window_hours: float = Field(24, alias="REACTIVATE_WINDOW_HOURS")
    rollover_job_enabled: bool = Field(default=True, alias="ROLLOVER_JOB_ENABLED")
    rollover_interval_seconds: int = Field(300, alias="ROLLOVER_INTERVAL_SECONDS")

    # Redis
    redis_url: str = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    rl_enabled: bool = Field(default=False, alias="RL_ENABLED")
    rl_window_seconds: int = Field(default=60, alias="RL_WINDOW_SECONDS")
    rl_max_reqs: int = Field(default=60, alias="RL_MAX_REQS")

    # NATS
    nats_urls: str = Field("nats://127.0.0.1:4222", alias="NATS_URLS")
    enable_nats_events: bool = Field(default=False, alias="ENABLE_NATS_EVENTS")
    nats_subject_checkins: str = Field("presence.checkins", alias="NATS_SUBJECT_CHECKINS")
    nats_subject_participants: str = Field("presence.participants", alias="NATS_SUBJECT_PARTICIPANTS")

    # Sign-in links encoded into member QR codes
    signin_base_url: str = Field("http://localhost:5173/sign-in", alias="SIGNIN_BASE_URL")

    cors_origins: str = Field(
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
        alias="CORS_ORIGINS",
    )
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_prefix = ""
        case_sensitive = False

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

_settings: Settings | None = None
def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
