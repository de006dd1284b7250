from pathlib import Path
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_PATH = Path(__file__).resolve().parents[2] / ".env"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_PATH, env_file_encoding="utf-8", extra="ignore")

    # App
    env: str = "dev"
    service_name: str = "board-api"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # Database
    database_url: str = "sqlite+aiosqlite:///./board.db"
    # production runs alembic instead
    auto_create_schema: bool = True

    # Security
    admin_secret: SecretStr = SecretStr("mysupersecret2026")
    promo_code_prefix: str = "PREMIUM_"

    # Expiry cycle
    expiry_interval_seconds: int = 24 * 60 * 60
    expiry_poll_seconds: int = 60

    # Limits
    visible_limit: int = 100
    pending_limit: int = 200
    max_photo_bytes: int = 3 * 1024 * 1024
    max_title_length: int = 120
    max_description_length: int = 2000

    # Telemetry
    telemetry_enabled: bool = False
    otlp_endpoint: str = "http://localhost:4318"  # Jaeger OTLP HTTP


settings = Settings()
