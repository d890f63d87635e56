from functools import lru_cache
import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_DIR = Path(__file__).resolve().parents[2]
BACKEND_ENV_FILE = BACKEND_DIR / ".env"

CyclePolicyMode = Literal["cycle_order", "curriculum_hours", "disabled"]
RestrictionSeverity = Literal["hard", "soft"]


class EngineWeights(BaseModel):
    soft_restriction: float = Field(default=25.0, ge=0)
    shift_mismatch: float = Field(default=15.0, ge=0)
    same_day_subject: float = Field(default=6.0, ge=0)
    teacher_load: float = Field(default=1.0, ge=0)
    room_load: float = Field(default=0.5, ge=0)
    capacity_waste: float = Field(default=2.0, ge=0)
    unit_mismatch: float = Field(default=3.0, ge=0)
    availability_preference: float = Field(default=0.5, ge=0)


class Settings(BaseSettings):
    # Resolve to backend/.env so `uvicorn --app-dir backend` works from any cwd.
    model_config = SettingsConfigDict(env_file=str(BACKEND_ENV_FILE), env_file_encoding="utf-8")

    project_name: str = "Horarios API"
    api_prefix: str = "/api"
    environment: str = "development"
    log_level: str | None = None
    log_dir: str | None = None
    log_file_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1024)
    log_file_backups: int = Field(default=5, ge=0)

    database_url: str = "sqlite+pysqlite:///./horarios.db"

    page_size: int = Field(default=20, ge=1, le=500)
    max_request_size_bytes: int = 5_000_000
    max_import_rows: int = 5_000

    cycle_policy_mode: CyclePolicyMode = "cycle_order"
    restriction_severity_overrides: dict[str, RestrictionSeverity] = Field(default_factory=dict)
    engine_weights: EngineWeights = Field(default_factory=EngineWeights)

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    ]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("restriction_severity_overrides", mode="before")
    @classmethod
    def normalize_severity_keys(cls, value: dict | str | None) -> dict:
        if value is None:
            return {}
        if isinstance(value, str):
            value = json.loads(value) if value.strip() else {}
        return {str(key).strip().upper(): str(item).strip().lower() for key, item in value.items()}


@lru_cache
def get_settings() -> Settings:
    return Settings()
