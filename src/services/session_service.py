"""Session gate: resolves the signed-in identity attached to a request."""

import logging

from fastapi import HTTPException, Request, Response, status
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import ValidationError

from src.core.config import Constants, settings
from src.domain.session import Identity, Session


logger = logging.getLogger(__name__)

SESSION_SALT = "user-session"
SIGN_IN_REDIRECT = "/"


def _serializer() -> URLSafeTimedSerializer:
    secret_key = settings.require_credential("secret_key", "Secret key for session signing")
    return URLSafeTimedSerializer(secret_key, salt=SESSION_SALT)


def create_session_token(identity: Identity) -> str:
    """Sign a session payload for ``identity``."""
    return _serializer().dumps({"email": identity.email, "name": identity.name})


def get_session(request: Request) -> Session:
    """Resolve the session bound to the request's cookie.

    Never raises: a missing, tampered, expired or unreadable cookie and a
    misconfigured secret all resolve to an anonymous session.
    """
    token = request.cookies.get(Constants.SESSION_COOKIE_NAME)
    if not token:
        return Session.anonymous()

    try:
        payload = _serializer().loads(token, max_age=settings.session_max_age_seconds)
        identity = Identity.model_validate(payload)
    except (BadSignature, SignatureExpired):
        logger.warning("session_tampered_or_expired", extra={"path": request.url.path})
        return Session.anonymous()
    except (ValidationError, ValueError) as e:
        logger.warning("session_unreadable", extra={"path": request.url.path, "error": str(e)})
        return Session.anonymous()

    return Session(authenticated=True, identity=identity)


async def require_session(request: Request) -> Identity:
    """FastAPI dependency for protected pages.

    Raises:
        HTTPException: 307 redirect to the site root when unauthenticated
    """
    session = get_session(request)
    if not session.authenticated or session.identity is None:
        logger.info("session_required_redirect", extra={"path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
            headers={"Location": SIGN_IN_REDIRECT},
        )
    return session.identity


def set_session_cookie(response: Response, identity: Identity) -> None:
    """Attach a freshly signed session cookie to a response."""
    response.set_cookie(
        key=Constants.SESSION_COOKIE_NAME,
        value=create_session_token(identity),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.session_max_age_seconds,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=Constants.SESSION_COOKIE_NAME, httponly=True, samesite="lax")
