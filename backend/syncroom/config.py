"""Application configuration"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Settings loaded from environment variables (or a local .env file)"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # CORS
    allowed_origins: str = "*"

    # Rooms
    room_sweep_interval: float = 30.0  # seconds between empty-room sweeps
    chat_capacity: int = 200

    # Client sync policy, served inside every snapshot
    host_report_interval: float = 1.0
    drift_threshold: float = 1.0

    # Song catalog
    catalog_url: str = "https://jiosavan-api-with-playlist.vercel.app/api/search/songs"
    catalog_timeout: float = 10.0

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    log_level: str = "INFO"

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def sync_policy(self) -> dict:
        return {
            "reportInterval": self.host_report_interval,
            "driftThreshold": self.drift_threshold,
        }


settings = Settings()
