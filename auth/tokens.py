"""
auth/tokens.py -- JWT, password hashing, and opaque token utilities.

Security design decisions:
  JWT: python-jose with HS256. Access and refresh tokens are signed with two
       different secrets so a leaked access secret cannot mint refresh tokens.
       Each token carries sub (user id), iat, exp, a random jti and a typ claim
       ("access" / "refresh"). Decoding accepts HS256 only -- passing an explicit
       algorithms list is what closes the algorithm-confusion hole ("none",
       RS256-with-HMAC-key). Every failure, expiry included, is TokenInvalid.

  Passwords: bcrypt used directly (no passlib wrapper). The cost factor is
       configurable via Settings.bcrypt_rounds. AuthService keeps a dummy hash
       of the same cost so login spends the same time on unknown emails.

  Opaque tokens: secrets.token_hex(32) gives 256 bits of entropy for email
       verification and password reset. They are validated by store lookup,
       never by signature, and carry no expiry of their own -- the reset expiry
       lives on the user record.

Layer rule: no imports from api/ or projects/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from core.config import Settings
from core.errors import InvalidInput, TokenInvalid

logger = logging.getLogger("taskboard.auth")

_ALGORITHM = "HS256"

# bcrypt refuses input longer than this many bytes.
MAX_PASSWORD_BYTES = 72

ACCESS = "access"
REFRESH = "refresh"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = 12) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Raises InvalidInput when the UTF-8 encoding is longer than
    MAX_PASSWORD_BYTES, which bcrypt cannot hash.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise InvalidInput(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store, or an over-long password on bcrypt >= 5.
        return False


# ---------------------------------------------------------------------------
# Opaque tokens
# ---------------------------------------------------------------------------


def issue_opaque_token() -> str:
    """Return 32 CSPRNG bytes as 64 hex characters."""
    return secrets.token_hex(32)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def encode_token(user_id: str, secret: str, ttl: timedelta, token_type: str) -> str:
    """Sign a JWT for user_id that expires ttl from now."""
    if ttl <= timedelta(0):
        raise ValueError("ttl must be positive")
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + ttl,
        # jti keeps two tokens minted in the same second distinct, which the
        # stored-refresh-token comparison depends on.
        "jti": uuid.uuid4().hex,
        "typ": token_type,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def decode_token(token: str, secret: str, token_type: str) -> str:
    """Verify a JWT and return its subject (the user id).

    Raises TokenInvalid for a bad signature, a non-HS256 header, a missing
    claim, a typ mismatch, or an expired token.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            options={"require_exp": True, "require_iat": True, "require_sub": True},
        )
    except JWTError as exc:
        raise TokenInvalid() from exc
    subject = payload.get("sub")
    if payload.get("typ") != token_type or not isinstance(subject, str) or not subject:
        raise TokenInvalid()
    return subject


class TokenService:
    """Mints and validates access and refresh tokens.

    Holds the two secrets and the default lifetimes taken from Settings at
    construction. No global state: tests build one from an explicit Settings.

    Usage:
        tokens = TokenService(settings)
        access = tokens.issue_access_token(user.id)
        user_id = tokens.validate_access_token(access)
    """

    def __init__(self, settings: Settings) -> None:
        self._access_secret = settings.jwt_access_secret
        self._refresh_secret = settings.jwt_refresh_secret
        self.access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self.refresh_ttl = timedelta(days=settings.refresh_token_expire_days)

    def issue_access_token(self, user_id: str, ttl: timedelta | None = None) -> str:
        return encode_token(user_id, self._access_secret, self.access_ttl if ttl is None else ttl, ACCESS)

    def issue_refresh_token(self, user_id: str, ttl: timedelta | None = None) -> str:
        return encode_token(user_id, self._refresh_secret, self.refresh_ttl if ttl is None else ttl, REFRESH)

    def validate_access_token(self, token: str) -> str:
        return decode_token(token, self._access_secret, ACCESS)

    def validate_refresh_token(self, token: str) -> str:
        """Check signature and expiry only.

        A refresh token is also required to equal the value stored on the
        user record; AuthService.refresh_token() performs that check.
        """
        return decode_token(token, self._refresh_secret, REFRESH)
