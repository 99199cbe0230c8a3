from pathlib import Path
from typing import Optional

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from registry_service.exceptions import ConfigurationError

env_path = Path(__file__).parent / ".env"

class Settings(BaseSettings):
    DATABASE_URL: str
    REGISTRY_HOST: str = "0.0.0.0"
    REGISTRY_PORT: int = 8000
    DB_POOL_SIZE: int = 5
    DB_POOL_RECYCLE: int = 1800
    DB_POOL_PRE_PING: bool = True
    DB_ECHO: bool = False
    AI_API_URL: str = "https://api.anthropic.com/v1/messages"
    AI_API_KEY: Optional[str] = None
    AI_API_VERSION: str = "2023-06-01"
    AI_MODEL: str = "claude-3-haiku-20240307"
    AI_MAX_TOKENS: int = 1024
    AI_TIMEOUT_SECONDS: float = 30.0
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=env_path, extra='ignore')

    @field_validator('DATABASE_URL')
    @classmethod
    def database_url_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("DATABASE_URL must not be empty")
        return v.strip()

_cached_settings: Optional[Settings] = None

def get_settings() -> Settings:
    global _cached_settings
    if _cached_settings is None:
        try:
            _cached_settings = Settings()
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise ConfigurationError(f"Invalid or missing configuration: {', '.join(fields)}") from e
    return _cached_settings

def reset_settings_cache() -> None:
    global _cached_settings
    _cached_settings = None
