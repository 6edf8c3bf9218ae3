import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///view_stats.db"
    service_name: str = "gleam_web_server"
    service_label: str = "Gleam"
    host: str = "0.0.0.0"
    port: int = 8000
    store_init_attempts: int = 5
    store_init_wait: float = 2.0
    log_level: str = "INFO"


def get_settings():
    """Build the settings from the environment, falling back to the defaults."""
    defaults = Settings()
    return Settings(
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        service_name=os.getenv("SERVICE_NAME", defaults.service_name),
        service_label=os.getenv("SERVICE_LABEL", defaults.service_label),
        host=os.getenv("HOST", defaults.host),
        port=int(os.getenv("PORT", defaults.port)),
        store_init_attempts=int(os.getenv("STORE_INIT_ATTEMPTS", defaults.store_init_attempts)),
        store_init_wait=float(os.getenv("STORE_INIT_WAIT", defaults.store_init_wait)),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )
