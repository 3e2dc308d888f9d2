import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

ENV_PREFIX = "CALC_"

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:4000",
]


class Settings(BaseModel):
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    benchmark_runs: int = Field(30, ge=1)
    warmup_runs: int = Field(10, ge=0)
    max_expression_length: int = Field(512, ge=1)
    host: str = "0.0.0.0"
    port: int = Field(8000, ge=1, le=65535)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level '{value}'")
        return value

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @model_validator(mode="after")
    def check_runs(self):
        if self.warmup_runs >= self.benchmark_runs:
            raise ValueError("warmup_runs must be smaller than benchmark_runs")
        return self


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from ``CALC_*`` environment variables."""
    environ = os.environ if environ is None else environ
    values = {}
    for name in Settings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in environ:
            values[name] = environ[key]
    return Settings(**values)
