# petcare/core/settings.py
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Pet Care Engine"

    STORE_PATH: str = "vpet_store.json"
    STORAGE_KEY: str = "vpet_pet_data"
    TIMEZONE: Optional[str] = None  # IANA name; local time when unset

    PET_TYPE: str = "dog"
    PET_NAME: str = "Buddy"

    # Timer periods (seconds)
    DECAY_INTERVAL_SECONDS: float = 30
    ACTION_COUNTDOWN_SECONDS: float = 1
    SLEEP_CHECK_INTERVAL_SECONDS: float = 60
    IDLE_EVENT_INTERVAL_SECONDS: float = 120
    COUNTDOWN_REFRESH_SECONDS: float = 30
    SCHEDULER_POLL_SECONDS: float = 0.5

    TOY_PENALTY_DELAY_SECONDS: float = 60 * 60
    WELCOME_BACK_MINUTES: float = 5
    IDLE_EVENT_CHANCE: float = 0.02

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore",
                                      case_sensitive=False)


settings = Settings()
