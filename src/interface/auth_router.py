"""Sign-in and sign-out, delegated to the OAuth identity provider."""

import logging
import secrets
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Request, Response, status
from fastapi.responses import RedirectResponse
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.core.config import Constants, constants, settings
from src.domain.session import Identity
from src.services.session_service import clear_session_cookie, set_session_cookie


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

STATE_SALT = "oauth-state"
AFTER_SIGN_IN = "/dashboard"
AFTER_SIGN_OUT = "/"


class ProviderError(Exception):
    """Raised when the identity provider does not yield a usable identity."""


def _state_serializer() -> URLSafeTimedSerializer:
    secret_key = settings.require_credential("secret_key", "Secret key for session signing")
    return URLSafeTimedSerializer(secret_key, salt=STATE_SALT)


def build_authorization_url(state: str) -> str:
    """Provider URL the browser is sent to for signing in."""
    client_id = settings.require_credential("oauth_client_id", "OAuth client ID")
    query = urlencode(
        {
            "client_id": client_id,
            "redirect_uri": settings.oauth_redirect_uri,
            "response_type": "code",
            "scope": settings.oauth_scopes,
            "state": state,
            "prompt": "select_account",
        }
    )
    return f"{settings.oauth_authorize_url}?{query}"


def validate_state(request: Request, state: str | None) -> bool:
    """Check the returned ``state`` against the signed cookie set at sign-in."""
    if not state:
        return False

    signed_state = request.cookies.get(Constants.OAUTH_STATE_COOKIE_NAME)
    if not signed_state:
        return False

    try:
        expected = _state_serializer().loads(signed_state, max_age=Constants.OAUTH_STATE_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired):
        return False
    return secrets.compare_digest(expected, state)


async def fetch_identity(code: str) -> Identity:
    """Exchange an authorization code for the user's identity.

    Raises:
        ProviderError: If the exchange fails or no email is returned
    """
    try:
        async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
            token_response = await client.post(
                settings.oauth_token_url,
                data={
                    "code": code,
                    "client_id": settings.require_credential("oauth_client_id", "OAuth client ID"),
                    "client_secret": settings.require_credential("oauth_client_secret", "OAuth client secret"),
                    "redirect_uri": settings.oauth_redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
            )
            token_response.raise_for_status()
            access_token = token_response.json().get("access_token")
            if not access_token:
                raise ProviderError("Token response did not include an access token")

            userinfo_response = await client.get(
                settings.oauth_userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            userinfo_response.raise_for_status()
            userinfo = userinfo_response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise ProviderError(f"Identity provider request failed: {e}") from e

    email = userinfo.get("email")
    if not email:
        raise ProviderError("Identity provider did not return an email")
    return Identity(email=email, name=userinfo.get("name") or email)


@router.get("/signin")
async def sign_in() -> Response:
    """Redirect to the identity provider."""
    state = secrets.token_urlsafe(32)
    response = RedirectResponse(url=build_authorization_url(state), status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(
        key=Constants.OAUTH_STATE_COOKIE_NAME,
        value=_state_serializer().dumps(state),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=Constants.OAUTH_STATE_MAX_AGE_SECONDS,
    )
    return response


@router.get("/callback")
async def callback(request: Request, code: str | None = None, state: str | None = None) -> Response:
    """Finish the provider round-trip and start a session."""
    response = RedirectResponse(url=AFTER_SIGN_OUT, status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(key=Constants.OAUTH_STATE_COOKIE_NAME, httponly=True, samesite="lax")

    if not code or not validate_state(request, state):
        logger.warning("oauth_callback_invalid_state")
        return response

    try:
        identity = await fetch_identity(code)
    except ProviderError as e:
        logger.warning("oauth_callback_failed", extra={"error": str(e)})
        return response

    response.headers["Location"] = AFTER_SIGN_IN
    set_session_cookie(response, identity)
    logger.info("sign_in_success", extra={"user_id": identity.email})
    return response


@router.get("/signout")
async def sign_out() -> Response:
    """Clear the session and return to the home page."""
    response = RedirectResponse(url=AFTER_SIGN_OUT, status_code=status.HTTP_303_SEE_OTHER)
    clear_session_cookie(response)
    logger.info("sign_out_success")
    return response
