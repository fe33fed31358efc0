from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, validator
from pydantic_settings import BaseSettings

from .errors import ConfigurationError


class S3Config(BaseModel):
    """Where batches are written."""

    endpoint: Optional[str] = None
    region: Optional[str] = None
    bucket: str
    path_style: bool = False

    model_config = {"frozen": True}


class Settings(BaseSettings):
    S3_ENDPOINT: Optional[str] = None
    S3_REGION: Optional[str] = None
    S3_BUCKET: Optional[str] = None
    S3_PATH_STYLE: bool = False

    OUTPUT_DIRECTORY: Optional[str] = None
    DATE_FORMAT: Optional[str] = None
    FILENAME_PREFIX: Optional[str] = None

    MAX_CONNECTION_TIME_MS: int = 600_000
    BACKOFF_PERIOD_MS: int = 10_000
    SHUTDOWN_FLUSH_MS: int = 5_000

    TRACKING_COLLECTOR_URL: Optional[str] = None
    TRACKING_APP_ID: str = "s3-loader"
    METRICS_ENABLED: bool = False
    PROMETHEUS_PORT: Optional[int] = None
    SENTRY_DSN: Optional[str] = None

    BAD_ROWS_PATH: Optional[str] = None
    BAD_ROWS_STREAM: Optional[str] = None

    LOG_LEVEL: str = "INFO"

    @validator("MAX_CONNECTION_TIME_MS", "BACKOFF_PERIOD_MS", "SHUTDOWN_FLUSH_MS")
    def _non_negative(cls, v):
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @validator("FILENAME_PREFIX", "OUTPUT_DIRECTORY", "DATE_FORMAT")
    def _blank_is_unset(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    @property
    def s3(self) -> S3Config:
        if not self.S3_BUCKET:
            raise ConfigurationError("S3_BUCKET is not configured")
        return S3Config(
            endpoint=self.S3_ENDPOINT,
            region=self.S3_REGION,
            bucket=self.S3_BUCKET,
            path_style=self.S3_PATH_STYLE,
        )

    @property
    def metrics_enabled(self) -> bool:
        return self.METRICS_ENABLED or self.PROMETHEUS_PORT is not None

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
