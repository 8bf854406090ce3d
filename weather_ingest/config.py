from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__


class AppSettings(BaseSettings):
    app_name: str = "WeatherIngest"
    app_version: str = __version__
    app_env: str = "development"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    # Record store (table) and payload store (blob container)
    database_url: str = "sqlite:///weather_ingest.db"
    partition_key: str = "WeatherInfo"
    payload_dir: str = "weatherdata"

    # Upstream weather source
    weather_base_url: str = "https://api.openweathermap.org/data/2.5/weather"
    weather_api_key: Optional[str] = None
    weather_city: str = "London"
    weather_timeout_connect: float = 5.0
    weather_timeout_read: float = 30.0

    # Periodic trigger
    fetch_interval_seconds: float = 60.0
    scheduler_enabled: bool = True
    run_on_startup: bool = True
    shutdown_grace_seconds: float = 30.0

    # .env support and prefix for clarity
    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
