"""Tests for configuration validation."""

import pytest

from src.core.config import Settings


def test_require_credential_with_valid_value() -> None:
    """Test require_credential returns value when credential is set."""
    settings = Settings(secret_key="s3cret")

    result = settings.require_credential("secret_key", "Secret key for session signing")

    assert result == "s3cret"


def test_require_credential_with_none_raises_error() -> None:
    """Test require_credential raises ValueError when credential is None."""
    settings = Settings(oauth_client_secret=None)

    with pytest.raises(ValueError, match="OAuth client secret credential not configured"):
        settings.require_credential("oauth_client_secret", "OAuth client secret")


def test_require_credential_with_empty_string_raises_error() -> None:
    """Test require_credential raises ValueError when credential is empty."""
    settings = Settings(secret_key="")

    with pytest.raises(ValueError, match="Secret key credential not configured"):
        settings.require_credential("secret_key", "Secret key")


def test_require_credential_error_message_includes_field_name() -> None:
    """Test error message includes the environment variable name."""
    settings = Settings(oauth_client_id=None)

    with pytest.raises(ValueError, match="OAUTH_CLIENT_ID"):
        settings.require_credential("oauth_client_id", "OAuth client ID")


def test_defaults_match_revalidation_interval() -> None:
    """Home counters revalidate every minute unless configured otherwise."""
    assert Settings().home_revalidate_seconds == 60


@pytest.mark.parametrize(
    ("environment", "expected"),
    [("production", True), ("Production", True), ("development", False)],
)
def test_is_production(environment: str, expected: bool) -> None:
    assert Settings(environment=environment).is_production is expected


def test_oauth_redirect_uri_ignores_trailing_slash() -> None:
    settings = Settings(public_url="https://tarefas.example/")

    assert settings.oauth_redirect_uri == "https://tarefas.example/auth/callback"
