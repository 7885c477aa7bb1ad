"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in projects/models.py -- dataclasses own domain shape; stores and services do
the work.

Layer rule: no imports from api/ or projects/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    The four token fields are never serialized to clients:

    verification_token -- opaque, set at registration and on resend, cleared
        when the email is verified. Non-empty implies is_email_verified=False.
    reset_token / reset_token_expiry -- opaque token and ISO 8601 expiry from
        forgot_password(); both cleared by a successful reset.
    refresh_token -- the single live refresh JWT. Login overwrites it, logout
        clears it, so every previously issued refresh token stops working.

    role is the global role. It is reserved: project permissions come from
    the project's member list, never from this field.

    id is None before the record is written to the database.
    """

    name: str
    email: str
    hashed_password: str
    role: str = "member"
    id: str | None = None
    is_email_verified: bool = False
    verification_token: str | None = None
    reset_token: str | None = None
    reset_token_expiry: str | None = None  # ISO 8601, UTC
    refresh_token: str | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
