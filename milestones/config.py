"""Application configuration from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Application
    app_name: str = "Milestone Schedule"
    debug: bool = False

    # Database
    data_dir: Path = Path("data")
    database_name: str = "schedules.db"

    # Logging
    log_file_name: str = "milestone-schedule.log"
    log_max_bytes: int = 5 * 1024 * 1024  # 5MB per file
    log_backup_count: int = 3

    # Editor
    default_item_label_prefix: str = "Milestone"  # New items get "<prefix> N"
    default_schedule_name: str = "Payment Schedule"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.database_name


settings = Settings()
