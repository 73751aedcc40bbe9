"""Configuration management for the PR digest bot."""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_file: str = Field(default="prdigest.db")

    # GitHub
    github_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_TOKEN", "GH_TOKEN"),
    )
    github_api_url: str = Field(default="https://api.github.com")

    # Slack Configuration
    slack_bot_token: Optional[str] = Field(default=None)
    slack_signing_secret: Optional[str] = Field(default=None)
    bot_name: str = Field(default="pr")

    # Default schedule (weekdays at this time)
    default_digest_hour: int = Field(default=9, ge=0, le=23)
    default_digest_minute: int = Field(default=0, ge=0, le=59)
    schedule_timezone: str = Field(default="UTC")

    # HTTP Client Defaults
    http_timeout_seconds: float = Field(default=15.0)

    # Production Settings
    environment: str = Field(default="development")

    # Bot Configuration
    log_level: str = Field(default="INFO")
    dry_run: bool = Field(default=False)
    log_json: bool = Field(default=False, description="Emit logs as JSON lines")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    def has_slack_credentials(self) -> bool:
        """Check if the bot can both receive and post Slack messages."""
        return bool(self.slack_bot_token and self.slack_signing_secret)

    def validate_github_config(self) -> None:
        """Validate that the GitHub client can authenticate."""
        if not self.github_token:
            raise ValueError(
                "No GitHub token found. Set GITHUB_TOKEN to a token with "
                "read:org and repo scopes."
            )


# Global settings instance
settings = Settings()
