"""Unit tests for core configuration module."""

import pytest
from pydantic import ValidationError

from election_sync.core.config import ConfigError, Settings, get_settings


def _required_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOURCE_TOKEN", "token-123")
    monkeypatch.setenv("PB_EMAIL", "sync@example.com")
    monkeypatch.setenv("PB_PASSWORD", "secret")


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Settings load from environment variables."""
        _required_env(monkeypatch)
        monkeypatch.setenv("PB_BASE_URL", "https://pb.example.com/")
        monkeypatch.setenv("SOURCE_AREAS_URL", "https://source.example.com/areas")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.source_token == "token-123"
        assert settings.pb_email == "sync@example.com"
        assert settings.pb_base_url == "https://pb.example.com"
        assert settings.source_areas_url == "https://source.example.com/areas"

    def test_settings_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Default values are applied correctly."""
        _required_env(monkeypatch)
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.source_per_page == 100
        assert settings.sync_max_pages == 1000
        assert settings.pb_user_collection == "users"
        assert settings.pb_admin_collection == "_superusers"
        assert settings.source_parties_url == "https://media.election.in.th/api/media/parties"
        assert settings.source_areas_url is None
        assert settings.log_level == "INFO"
        assert settings.log_dir is None

    def test_missing_credentials_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """PB_EMAIL and PB_PASSWORD are required."""
        monkeypatch.setenv("SOURCE_TOKEN", "token-123")
        monkeypatch.delenv("PB_EMAIL", raising=False)
        monkeypatch.delenv("PB_PASSWORD", raising=False)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_per_page_must_be_positive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Page size rejects zero."""
        _required_env(monkeypatch)
        monkeypatch.setenv("SOURCE_PER_PAGE", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_pb_base_url_requires_http_scheme(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Store URL must be http(s)."""
        _required_env(monkeypatch)
        monkeypatch.setenv("PB_BASE_URL", "ftp://pb.example.com")
        with pytest.raises(ValidationError, match="http"):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_collection_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """PB_COLLECTION_* overrides logical collection names."""
        _required_env(monkeypatch)
        monkeypatch.setenv("PB_COLLECTION_PROVINCES", "provinces_2026")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.collection("provinces") == "provinces_2026"
        assert settings.collection("partylist_results") == "partylistResults"
        assert settings.collection("unknown") == "unknown"


class TestSourceUrl:
    """Tests for Settings.source_url()."""

    def test_returns_configured_url(self, settings: Settings) -> None:
        assert settings.source_url("source_areas_url") == "https://source.test/areas"

    def test_missing_url_raises_config_error(self, settings: Settings) -> None:
        settings.source_areas_url = None
        with pytest.raises(ConfigError, match="SOURCE_AREAS_URL"):
            settings.source_url("source_areas_url")


class TestGetSettings:
    """Tests for get_settings()."""

    def test_missing_required_values_raise_config_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir("/")
        for name in ("SOURCE_TOKEN", "PB_EMAIL", "PB_PASSWORD"):
            monkeypatch.delenv(name, raising=False)
        with pytest.raises(ConfigError, match="PB_EMAIL"):
            get_settings()

    def test_returns_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir("/")
        _required_env(monkeypatch)
        assert get_settings().pb_password == "secret"
