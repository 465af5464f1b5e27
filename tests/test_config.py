"""
Tests for configuration loading.
"""

import json
from pathlib import Path

import pytest

from jobtracker.config import DEFAULT_APP_ID, load_config
from jobtracker.errors import ConfigurationError, ErrorCode

FIREBASE = {"apiKey": "key-123", "projectId": "tracker-prod", "authDomain": "tracker-prod.firebaseapp.com"}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "JOBTRACKER_CONFIG",
        "JOBTRACKER_FIREBASE_CONFIG",
        "JOBTRACKER_AUTH_TOKEN",
        "JOBTRACKER_APP_ID",
        "JOBTRACKER_LOG_LEVEL",
        "JOBTRACKER_SESSION_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "app_id: my-tracker\n"
        "log_level: DEBUG\n"
        "firebase:\n"
        "  apiKey: key-123\n"
        "  projectId: tracker-prod\n"
        "  storageBucket: tracker-prod.appspot.com\n"
    )
    return path


class TestLoadConfig:
    """Tests for load_config."""

    def test_yaml_file(self, config_file):
        config = load_config(config_file)

        assert config.app_id == "my-tracker"
        assert config.log_level == "DEBUG"
        assert config.firebase.api_key == "key-123"
        assert config.firebase.project_id == "tracker-prod"
        assert config.auth_token is None

    def test_extra_firebase_keys_allowed(self, config_file):
        config = load_config(config_file)

        assert config.firebase.model_extra["storageBucket"] == "tracker-prod.appspot.com"

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")

        assert config.app_id == DEFAULT_APP_ID
        assert config.firebase is None
        assert config.log_level == "INFO"

    def test_config_path_from_env(self, config_file, monkeypatch):
        monkeypatch.setenv("JOBTRACKER_CONFIG", str(config_file))

        assert load_config().app_id == "my-tracker"

    def test_environment_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv("JOBTRACKER_FIREBASE_CONFIG", json.dumps({"apiKey": "env-key", "projectId": "env-proj"}))
        monkeypatch.setenv("JOBTRACKER_AUTH_TOKEN", "custom-token")
        monkeypatch.setenv("JOBTRACKER_APP_ID", "env-app")
        monkeypatch.setenv("JOBTRACKER_SESSION_PATH", "/tmp/session.json")

        config = load_config(config_file)

        assert config.firebase.api_key == "env-key"
        assert config.auth_token == "custom-token"
        assert config.app_id == "env-app"
        assert config.session_path == Path("/tmp/session.json")

    def test_environment_alone_is_enough(self, tmp_path, monkeypatch):
        monkeypatch.setenv("JOBTRACKER_FIREBASE_CONFIG", json.dumps(FIREBASE))

        config = load_config(tmp_path / "absent.yaml")

        assert config.require_firebase().auth_domain == "tracker-prod.firebaseapp.com"

    def test_invalid_firebase_json(self, tmp_path, monkeypatch):
        monkeypatch.setenv("JOBTRACKER_FIREBASE_CONFIG", "{not json")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_config(tmp_path / "absent.yaml")

    def test_incomplete_firebase_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("JOBTRACKER_FIREBASE_CONFIG", json.dumps({"apiKey": "key-123"}))

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_config(tmp_path / "absent.yaml")


class TestRequireFirebase:
    """Tests for the missing-credentials check."""

    def test_missing_firebase_is_configuration_error(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")

        with pytest.raises(ConfigurationError) as exc_info:
            config.require_firebase()

        assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR
        assert exc_info.value.to_dict()["error"]["code"] == "CONFIGURATION_ERROR"
