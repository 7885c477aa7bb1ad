"""
auth/service.py -- Account lifecycle: registration, sessions, verification, passwords.

AuthService composes three collaborators handed to it at construction:
  UserRepository (auth/store.py) -- durable user state
  TokenService   (auth/tokens.py) -- JWT minting and validation
  Mailer         (auth/mailer.py) -- verification and reset emails

User states: Unverified -> Verified. An unverified user cannot log in but can
ask for a new verification email any number of times. Password reset works
in either state.

Session model:
  Access tokens are stateless. Refresh tokens are stateless too, but a refresh
  token is only honoured while it equals the single value stored on the user
  record. login() overwrites that value and logout() clears it, so both
  immediately revoke every refresh token issued earlier.

Errors are core.errors.ServiceError subclasses, raised and never retried.
Store and mail failures propagate unchanged. The one swallowed case is the
unknown email in forgot_password(), so the response never reveals whether an
account exists.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError

from auth.mailer import Mailer
from auth.models import User
from auth.store import UserRepository
from auth.tokens import TokenService, hash_password, issue_opaque_token, verify_password
from core.config import Settings
from core.errors import Conflict, EmailNotVerified, NotFound, TokenExpired, TokenInvalid, Unauthorized
from core.ids import parse_id

logger = logging.getLogger("taskboard.auth")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Orchestrates every account lifecycle operation.

    Usage:
        auth = AuthService(UserStore(url), TokenService(settings), build_mailer(settings), settings)
        auth.register("Ada", "ada@example.com", "correct horse")
        access, refresh = auth.login("ada@example.com", "correct horse")
    """

    def __init__(self, users: UserRepository, tokens: TokenService, mailer: Mailer, settings: Settings) -> None:
        self.users = users
        self.tokens = tokens
        self.mailer = mailer
        self._rounds = settings.bcrypt_rounds
        self._reset_ttl = timedelta(minutes=settings.reset_token_expire_minutes)
        # Same cost as real hashes so unknown-email logins take as long as real ones.
        self._dummy_hash = hash_password("taskboard_timing_dummy", self._rounds)

    # ------------------------------------------------------------------
    # Registration and verification
    # ------------------------------------------------------------------

    def register(self, name: str, email: str, password: str) -> User:
        """Create an unverified account and email its verification token.

        The record is written before the email is sent. If sending fails the
        error propagates and the account stays; the user can ask for a resend.
        """
        email = normalize_email(email)
        if self.users.get_by_email(email) is not None:
            raise Conflict("An account with that email already exists.")

        user = User(
            name=name.strip(),
            email=email,
            hashed_password=hash_password(password, self._rounds),
            verification_token=issue_opaque_token(),
        )
        try:
            self.users.create_user(user)
        except IntegrityError as exc:
            # A concurrent registration for the same email won the insert.
            raise Conflict("An account with that email already exists.") from exc
        logger.info("Registered user %s", user.id)

        self.mailer.send_verification_email(user.email, user.verification_token)
        return user

    def verify_email(self, token: str) -> None:
        user = self.users.get_by_verification_token(token)
        if user is None:
            raise TokenInvalid("Verification token is invalid.")
        user.is_email_verified = True
        user.verification_token = None
        self.users.update_user(user)
        logger.info("Verified email for user %s", user.id)

    def resend_verification_email(self, user_id: str) -> None:
        """Issue a fresh verification token, replacing the old one, and send it."""
        user = self._load(user_id)
        if user.is_email_verified:
            raise Conflict("Email is already verified.")
        user.verification_token = issue_opaque_token()
        self.users.update_user(user)
        self.mailer.send_verification_email(user.email, user.verification_token)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> tuple[str, str]:
        """Return (access_token, refresh_token) and make the refresh token the only live one.

        Unknown email and wrong password raise the same Unauthorized, and bcrypt
        runs in both cases. The verification check comes after the password
        check, so EmailNotVerified is only revealed to someone who knows the
        password.
        """
        user = self.users.get_by_email(normalize_email(email))
        if user is None:
            verify_password(password, self._dummy_hash)
            logger.warning("Failed login for unknown email")
            raise Unauthorized("Invalid email or password.")
        if not verify_password(password, user.hashed_password):
            logger.warning("Failed login for user %s", user.id)
            raise Unauthorized("Invalid email or password.")
        if not user.is_email_verified:
            raise EmailNotVerified("Verify your email address before logging in.")

        access_token = self.tokens.issue_access_token(user.id)
        refresh_token = self.tokens.issue_refresh_token(user.id)
        user.refresh_token = refresh_token
        self.users.update_user(user)
        logger.info("User %s logged in", user.id)
        return access_token, refresh_token

    def logout(self, user_id: str) -> None:
        user = self._load(user_id)
        user.refresh_token = None
        self.users.update_user(user)
        logger.info("User %s logged out", user.id)

    def refresh_token(self, refresh_token: str) -> str:
        """Exchange a live refresh token for a new access token.

        The refresh token itself is not rotated.
        """
        user_id = self.tokens.validate_refresh_token(refresh_token)
        user = self.users.get_by_id(user_id)
        if user is None:
            raise Unauthorized("Account no longer exists.")
        if user.refresh_token != refresh_token:
            raise TokenInvalid("Refresh token has been revoked.")
        return self.tokens.issue_access_token(user.id)

    def get_current_user(self, user_id: str) -> User:
        return self._load(user_id)

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        user = self._load(user_id)
        if not verify_password(old_password, user.hashed_password):
            raise Unauthorized("Current password is incorrect.")
        user.hashed_password = hash_password(new_password, self._rounds)
        self.users.update_user(user)
        logger.info("User %s changed password", user.id)

    def forgot_password(self, email: str) -> None:
        """Send a reset link if the account exists; do nothing visible otherwise."""
        user = self.users.get_by_email(normalize_email(email))
        if user is None:
            return
        user.reset_token = issue_opaque_token()
        user.reset_token_expiry = (datetime.now(timezone.utc) + self._reset_ttl).isoformat()
        self.users.update_user(user)
        logger.info("Issued password reset token for user %s", user.id)
        self.mailer.send_password_reset_email(user.email, user.reset_token)

    def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password with a reset token. The token works once."""
        user = self.users.get_by_reset_token(token)
        if user is None:
            raise TokenInvalid("Reset token is invalid.")
        if user.reset_token_expiry is None or _is_past(user.reset_token_expiry):
            raise TokenExpired("Reset token has expired.")
        user.hashed_password = hash_password(new_password, self._rounds)
        user.reset_token = None
        user.reset_token_expiry = None
        self.users.update_user(user)
        logger.info("User %s reset password", user.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, user_id: str) -> User:
        user = self.users.get_by_id(parse_id(user_id, "user_id"))
        if user is None:
            raise NotFound("User not found.")
        return user


def _is_past(iso_timestamp: str) -> bool:
    expiry = datetime.fromisoformat(iso_timestamp)
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) > expiry
