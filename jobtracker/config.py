"""Configuration management."""

import json
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigurationError

CONFIG_DIR = Path(__file__).parent.parent / "config"
DEFAULT_APP_ID = "default-job-tracker-app"


class FirebaseConfig(BaseModel):
    """Client-side Firebase project settings (the web app config object)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    api_key: str = Field(alias="apiKey", min_length=1)
    project_id: str = Field(alias="projectId", min_length=1)
    auth_domain: Optional[str] = Field(default=None, alias="authDomain")


class Config(BaseModel):
    """Application configuration."""

    app_id: str = DEFAULT_APP_ID
    firebase: Optional[FirebaseConfig] = None
    auth_token: Optional[str] = None
    log_level: str = "INFO"
    session_path: Path = CONFIG_DIR / "session.json"

    def require_firebase(self) -> FirebaseConfig:
        """Return the Firebase config or fail before any connection is attempted."""
        if self.firebase is None:
            raise ConfigurationError(
                "Firebase config is missing. Set JOBTRACKER_FIREBASE_CONFIG "
                "or add a 'firebase' section to config/config.yaml."
            )
        return self.firebase


_config: Optional[Config] = None


def _env_overrides() -> dict:
    overrides: dict = {}

    raw_firebase = os.getenv("JOBTRACKER_FIREBASE_CONFIG")
    if raw_firebase:
        try:
            overrides["firebase"] = json.loads(raw_firebase)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"JOBTRACKER_FIREBASE_CONFIG is not valid JSON: {e}", original_error=e
            ) from e

    for env_var, key in (
        ("JOBTRACKER_AUTH_TOKEN", "auth_token"),
        ("JOBTRACKER_APP_ID", "app_id"),
        ("JOBTRACKER_LOG_LEVEL", "log_level"),
        ("JOBTRACKER_SESSION_PATH", "session_path"),
    ):
        value = os.getenv(env_var)
        if value:
            overrides[key] = value

    return overrides


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file, then apply environment overrides.

    The YAML file is optional; the environment alone can configure the tracker.
    """
    global _config

    if config_path is None:
        env_path = os.getenv("JOBTRACKER_CONFIG")
        config_path = Path(env_path) if env_path else CONFIG_DIR / "config.yaml"

    data: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    data.update(_env_overrides())

    try:
        _config = Config(**data)
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", original_error=e) from e
    return _config


def get_config() -> Config:
    """Get the loaded configuration."""
    if _config is None:
        return load_config()
    return _config
