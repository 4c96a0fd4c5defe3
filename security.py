"""Password hashing and signed identity tokens."""
import hashlib
import hmac
import secrets
from functools import lru_cache
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

# PBKDF2-SHA256 work factor; stored hashes carry it so it can be raised later
PASSWORD_ITERATIONS = 390000
_HASH_SCHEME = "pbkdf2_sha256"


class InvalidToken(Exception):
    """Token signature, structure or expiry did not check out."""


# Credential store

def hash_password(password: str, salt: Optional[str] = None, iterations: Optional[int] = None) -> str:
    salt = salt or secrets.token_hex(16)
    iterations = iterations or PASSWORD_ITERATIONS
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations).hex()
    return f"{_HASH_SCHEME}${iterations}${salt}${digest}"


def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, iterations, salt, _ = stored.split("$")
        if scheme != _HASH_SCHEME:
            return False
        candidate = hash_password(password, salt, int(iterations))
    except (AttributeError, ValueError):
        return False
    return hmac.compare_digest(candidate, stored)


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """A hash no password matches, checked when the account does not exist."""
    return hash_password(secrets.token_hex(16))


# Token service

class TokenService:
    """Issues and verifies HMAC-signed tokens carrying only the subject id."""

    def __init__(self, secret: str, expires_minutes: int = 60, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("TokenService requires a signing secret")
        self._secret = secret
        self._algorithm = algorithm
        self.expires_in = timedelta(minutes=expires_minutes)

    def issue(self, subject_id: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {"id": str(subject_id), "iat": now, "exp": now + self.expires_in}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            raise InvalidToken(str(exc)) from exc
        if not payload.get("id"):
            raise InvalidToken("token has no subject")
        return payload
