from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Storage
    data_dir: str = "./data"
    codes_file: str = "codes.json"
    settings_file: str = "settings.json"

    # Discord
    discord_bot_token: str = ""
    discord_api_base: str = "https://discord.com/api/v10"
    notification_enabled: bool = True
    publish_delay_seconds: float = 0.5
    announcement_scan_limit: int = 100

    # Code sync / verification
    code_sync_interval_hours: int = 6
    code_verify_interval_hours: int = 6
    settings_refresh_interval_minutes: int = 1
    manual_code_validity_days: int = 7
    scraped_code_validity_days: int = 30

    # Reminders (UTC)
    arena_reminder_time: str = "23:30"
    bear_trap_default_interval_days: int = 2

    # Crawler
    crawler_delay_min: float = 1
    crawler_delay_max: float = 3
    crawler_max_retries: int = 3

    @property
    def codes_path(self) -> Path:
        return Path(self.data_dir) / self.codes_file

    @property
    def guild_settings_path(self) -> Path:
        return Path(self.data_dir) / self.settings_file


@lru_cache
def get_settings() -> Settings:
    return Settings()
