"""
Request identity checks.

require_identity verifies the signed token AND that its subject equals the
caller-declared userid header. Both checks are kept independently; handlers
downstream trust request.state.identity without re-verifying.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request

from config import Settings, get_settings
from errors import Forbidden, Unauthenticated
from logger import get_logger
from security import InvalidToken, TokenService

logger = get_logger("auth")


@dataclass(frozen=True)
class Identity:
    user_id: str


def get_token_service(settings: Settings = Depends(get_settings)) -> TokenService:
    return TokenService(
        settings.jwt_secret,
        expires_minutes=settings.jwt_expires_minutes,
        algorithm=settings.jwt_algorithm,
    )


def require_identity(
    request: Request,
    token: Optional[str] = Header(None),
    userid: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    if not token or not userid:
        raise Unauthenticated("Unauthorized: token and userid headers are required.")
    try:
        payload = tokens.verify(token)
    except InvalidToken as exc:
        logger.info(f"Rejected token for declared user {userid}: {exc}")
        raise Forbidden("Forbidden: invalid or expired token.")
    if str(payload["id"]) != userid:
        logger.warning(f"Token subject does not match declared user {userid}")
        raise Forbidden("Forbidden: token does not belong to this user.")

    identity = Identity(user_id=userid)
    request.state.identity = identity
    return identity


def require_signup_secret(
    x_auth_secret: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Gate signup behind a shared secret when SIGNUP_SECRET is configured."""
    if settings.signup_secret and x_auth_secret != settings.signup_secret:
        raise Unauthenticated("Unauthorized: Access is denied")
