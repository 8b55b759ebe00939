"""Application configuration using Pydantic Settings."""
from datetime import timedelta
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Synapse Admin API
    synapse_admin_url: str = Field(..., description="Synapse admin connection URL (must end with /)")
    synapse_registration_secret: str = Field(..., description="Shared secret for admin registration")
    synapse_public_url: Optional[str] = Field(default=None, description="Public URL users connect to")
    synapse_timeout_seconds: float = Field(default=5.0, gt=0, description="Admin API request timeout")

    # Invites
    public_url: str = Field(..., description="Public URL of this server, used in invite links")
    server_title: str = Field(default="Matrix Invites", description="Server title")
    token_expiry_seconds: int = Field(default=48 * 3600, gt=0, description="Invite token lifetime in seconds")
    token_bytes: int = Field(default=32, ge=16, description="Random bytes per invite token")

    # API Configuration
    public_host: str = Field(default="0.0.0.0", description="Public (signup) server host")
    public_port: int = Field(default=8000, description="Public (signup) server port")
    private_host: str = Field(default="127.0.0.1", description="Private (invite) server host")
    private_port: int = Field(default=8001, description="Private (invite) server port")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("synapse_admin_url")
    @classmethod
    def validate_admin_url(cls, v):
        """The admin URL is used as a base for relative paths."""
        if not v.endswith("/"):
            raise ValueError("The Synapse admin URL must end with /")
        return v

    @property
    def token_expiry(self) -> timedelta:
        """Invite token lifetime."""
        return timedelta(seconds=self.token_expiry_seconds)

    def invite_url(self, token: str) -> str:
        """Build the public signup link for a token."""
        return f"{self.public_url.rstrip('/')}/signup/?token={token}"


# Global settings instance
settings = Settings()
