from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (SQLite file next to the repo, packaged hierarchy).
    - Every value can be overridden with a `SADDLE_` environment variable.
    - `jwt_secret` has no usable default: the API refuses tokens until it is set.
    """

    model_config = SettingsConfigDict(env_prefix="SADDLE_", extra="ignore")

    db_url: str | None = None
    role_hierarchy_path: str | None = None
    log_level: str = "INFO"

    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = None
    jwt_issuer: str | None = None
    clock_skew_seconds: int = 30

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "saddle_authz.db"
        return f"sqlite:///{db_path}"

    def resolved_role_hierarchy_path(self) -> Path:
        if self.role_hierarchy_path:
            return Path(self.role_hierarchy_path)

        return Path(__file__).resolve().parent / "config" / "role_hierarchy.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
