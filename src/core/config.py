"""Configuration management for tarefas."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Document store
    sqlite_db_path: str = Field(default="data/tarefas.db", description="Path of the SQLite document store")

    # Web application
    public_url: str = Field(default="http://localhost:8000", description="Public base URL used in share links")
    secret_key: str | None = Field(default=None, description="Secret key used to sign session cookies")
    environment: str = Field(default="development", description="Deployment environment name")

    # Identity provider (OAuth2 / OpenID Connect, Google by default)
    oauth_client_id: str | None = Field(default=None, description="OAuth client ID issued by the identity provider")
    oauth_client_secret: str | None = Field(default=None, description="OAuth client secret")
    oauth_authorize_url: str = Field(
        default="https://accounts.google.com/o/oauth2/v2/auth", description="Provider authorization endpoint"
    )
    oauth_token_url: str = Field(default="https://oauth2.googleapis.com/token", description="Provider token endpoint")
    oauth_userinfo_url: str = Field(
        default="https://openidconnect.googleapis.com/v1/userinfo", description="Provider userinfo endpoint"
    )
    oauth_scopes: str = Field(default="openid email profile", description="Space separated OAuth scopes")

    # Sessions
    session_max_age_seconds: int = Field(default=30 * 24 * 3600, description="Lifetime of a signed session cookie")

    # Pages
    home_revalidate_seconds: int = Field(default=60, description="Revalidation interval of the home page counters")
    date_format: str = Field(default="%x", description="strftime format used to display task creation dates")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    @property
    def is_production(self) -> bool:
        """Whether the app runs in production (enables secure cookies)."""
        return self.environment.lower() == "production"

    @property
    def oauth_redirect_uri(self) -> str:
        """Callback URL registered with the identity provider."""
        return f"{self.public_url.rstrip('/')}/auth/callback"

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # Cookies
    SESSION_COOKIE_NAME: str = "session"
    OAUTH_STATE_COOKIE_NAME: str = "oauth_state"
    OAUTH_STATE_MAX_AGE_SECONDS: int = 600  # 10 minutes to finish the provider round-trip

    # Collections
    TASKS_COLLECTION: str = "tasks"
    COMMENTS_COLLECTION: str = "comments"

    # Pagination Defaults
    MAX_PER_PAGE_LIMIT: int = 1000

    # Live subscriptions
    CHANGE_FEED_QUEUE_MAXSIZE: int = 100
    STREAM_KEEPALIVE_SECONDS: int = 15

    # Cache keys
    CACHE_KEY_HOME_COUNTERS: str = "home:counters"

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent
    TEMPLATES_DIR: Path = PROJECT_ROOT / "templates"


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
