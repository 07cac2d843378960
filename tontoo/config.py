"""Runtime settings and project manifest support for Tontoo."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from tontoo.errors import ConfigError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Process-wide settings, overridable through ``TONTOO_*`` variables."""

    # Bundle
    secret_key: str = "tontoo-super-secret-key-123456789012345"
    bundle_extension: str = ".tontoo"

    # Project layout
    source_extension: str = ".tont"
    packages_dir: str = "tont-packets"
    manifest_name: str = "tontoo.json"
    default_main: str = "Main.tont"
    build_dir: str = "build"

    # Runtime
    idle_grace_seconds: float = 1.0
    log_level: str = "info"
    cert_validity_days: int = 365

    model_config = SettingsConfigDict(env_prefix="TONTOO_", env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


class ProjectManifest(BaseModel):
    """Contents of a project's ``tontoo.json``."""

    name: Optional[str] = None
    version: str = "1.0.0"
    main: Optional[str] = None
    dependencies: Dict[str, Any] = Field(default_factory=dict)

    def main_file(self, settings: Optional[Settings] = None) -> str:
        return self.main or (settings or get_settings()).default_main


def parse_manifest(text: str, *, path: Optional[str] = None) -> ProjectManifest:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Manifest is not valid JSON: {exc.msg}", path=path, line=exc.lineno) from exc
    if not isinstance(data, dict):
        raise ConfigError("Manifest must be a JSON object", path=path)
    try:
        return ProjectManifest.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid manifest: {exc}", path=path) from exc


def load_manifest(root: Path, settings: Optional[Settings] = None) -> Optional[ProjectManifest]:
    """Read ``tontoo.json`` from ``root``; ``None`` when the file is absent."""
    settings = settings or get_settings()
    manifest_path = Path(root) / settings.manifest_name
    if not manifest_path.exists():
        return None
    return parse_manifest(manifest_path.read_text(encoding="utf-8"), path=str(manifest_path))


__all__ = [
    "Settings",
    "get_settings",
    "ProjectManifest",
    "parse_manifest",
    "load_manifest",
]
