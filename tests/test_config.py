"""Tests for configuration management."""

import pytest

from prdigest.config import Settings


class TestSettings:
    """Tests for Settings class."""

    def test_default_settings(self, monkeypatch):
        """Test default settings values."""
        for name in ("GITHUB_TOKEN", "GH_TOKEN", "ENVIRONMENT", "DRY_RUN", "BOT_NAME"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.database_file == "prdigest.db"
        assert settings.github_token is None
        assert settings.github_api_url == "https://api.github.com"
        assert settings.bot_name == "pr"
        assert settings.default_digest_hour == 9
        assert settings.default_digest_minute == 0
        assert settings.schedule_timezone == "UTC"
        assert settings.dry_run is False
        assert not settings.is_production()

    def test_settings_from_env(self, monkeypatch):
        """Test settings loaded from environment variables."""
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")
        monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-env")
        monkeypatch.setenv("SLACK_SIGNING_SECRET", "shh")
        monkeypatch.setenv("DEFAULT_DIGEST_HOUR", "7")
        monkeypatch.setenv("ENVIRONMENT", "Production")
        monkeypatch.setenv("DRY_RUN", "true")

        settings = Settings(_env_file=None)

        assert settings.github_token == "ghp_env"
        assert settings.default_digest_hour == 7
        assert settings.dry_run is True
        assert settings.is_production()
        assert settings.has_slack_credentials()

    def test_gh_token_alias(self, monkeypatch):
        """GH_TOKEN is accepted when GITHUB_TOKEN is absent."""
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        monkeypatch.setenv("GH_TOKEN", "ghp_cli")

        assert Settings(_env_file=None).github_token == "ghp_cli"

    def test_invalid_default_hour(self, monkeypatch):
        """Out-of-range schedule hours are rejected."""
        monkeypatch.setenv("DEFAULT_DIGEST_HOUR", "24")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_validate_github_config(self, test_settings):
        """A token is required to talk to GitHub."""
        test_settings.validate_github_config()

        test_settings.github_token = None
        with pytest.raises(ValueError, match="GITHUB_TOKEN"):
            test_settings.validate_github_config()

    def test_slack_credentials_need_both_values(self, test_settings):
        """Posting and receiving need both the token and the secret."""
        test_settings.slack_signing_secret = "shh"
        assert test_settings.has_slack_credentials()

        test_settings.slack_signing_secret = None
        assert not test_settings.has_slack_credentials()
