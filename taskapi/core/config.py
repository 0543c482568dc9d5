from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Task Management API"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./tasks.db"
    database_echo: bool = False
    create_tables_on_startup: bool = True

    cache_enabled: bool = True
    redis_dsn: str = "redis://localhost:6379/0"
    redis_pool_size: int = 5
    redis_connect_timeout: float = 5.0
    cache_namespace: str = "taskapi:"
    l1_enabled: bool = True
    l1_maxsize: int = 2048
    l1_ttl_seconds: int = 60  # default L1 TTL
    l2_ttl_seconds: int = 300  # default Redis TTL

    jwt_secret: str = "change-me-in-production-use-a-long-random-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24

    upload_dir: str = "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024
    allowed_upload_types: str = "jpeg|jpg|png|gif|pdf|doc|docx|txt|zip"

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_username: str = "demo@example.com"
    smtp_password: str = "demo-password"
    smtp_start_tls: bool = True
    smtp_timeout: float = 10.0
    email_sender_name: str = "Task Manager"

    weather_api_key: str = "demo-key"
    weather_api_base: str = "https://api.openweathermap.org/data/2.5"
    weather_units: str = "metric"
    weather_timeout_seconds: float = 10.0


@lru_cache
def get_settings() -> Settings:
    return Settings()
