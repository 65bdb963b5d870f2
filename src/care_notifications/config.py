"""Engine configuration loaded from environment variables."""
import os
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Notification engine settings loaded from environment."""

    model_config = SettingsConfigDict(env_prefix="CARE_NOTIFICATIONS_")

    # Database paths
    data_path: str = os.getenv("DATA_PATH", os.getcwd())
    alert_db_name: str = "notifications.db"
    facility_db_name: str = "facility.db"

    @property
    def alert_db_path(self) -> str:
        return os.path.join(self.data_path, self.alert_db_name)

    @property
    def facility_db_path(self) -> str:
        return os.path.join(self.data_path, self.facility_db_name)

    # External AI analysis function
    ai_analysis_url: Optional[str] = None
    ai_api_key: Optional[str] = None
    ai_timeout_seconds: float = 60.0
    ai_min_confidence: float = 0.0


@lru_cache
def get_settings() -> EngineSettings:
    return EngineSettings()
