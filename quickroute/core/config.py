from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "Quick Route API"
    VERSION: str = "0.3.0"
    API_V1_STR: str = "/api/v1"

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    TWOGIS_API_KEY: str | None = None
    REDIS_URL: str | None = None

    GEOCODING_CACHE_TTL_SECONDS: int = 86400

    MAX_RETRIES: int = 3
    REQUEST_TIMEOUT: int = 30
    MAX_CONCURRENT_REQUESTS: int = 16

    # ~11 m grid at 1e4
    ETA_COORD_PRECISION: float = 1e4
    MAX_INTERMEDIATE_STOPS: int = 12
    DEFAULT_TRANSPORT_MODE: str = "automobile"
    USE_METRIC_UNITS: bool = True

    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    @field_validator("ETA_COORD_PRECISION", "MAX_INTERMEDIATE_STOPS", "MAX_CONCURRENT_REQUESTS")
    @classmethod
    def require_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v


settings = Settings()
