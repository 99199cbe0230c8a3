from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

env_path = Path(__file__).parent / ".env"

class Settings(BaseSettings):
    UPLOAD_HOST: str = "0.0.0.0"
    UPLOAD_PORT: int = 8001
    REGISTRY_URL: str = "http://localhost:8000"
    REGISTRY_TIMEOUT_SECONDS: float = 10.0
    BLOB_STORAGE_PATH: Path = Path("blobstorage")
    BLOB_PUBLIC_BASE_URL: str = "http://localhost:8001"
    OWNER_COLLECTION: str = "domains"
    MAX_FILE_SIZE_BYTES: int = Field(10 * 1024 * 1024, gt=0)
    ALLOWED_TYPES: List[str] = ["image/*", "application/pdf"]
    UPLOAD_CHUNK_SIZE: int = Field(256 * 1024, gt=0)
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=env_path, extra='ignore')

settings = Settings()

def get_settings() -> Settings:
    return settings
