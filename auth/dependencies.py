"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Protected routes authenticate with an "Authorization: Bearer <access token>"
header. Validation is stateless: the token's signature, expiry, and type are
checked by the TokenService on app.state; the user record is not loaded.
Handlers that need the record go through AuthService.get_current_user().

get_current_user_id() raises HTTP 401 when the header is missing or malformed.
A present but bad token raises TokenInvalid, which api/main.py maps to 401
with the token_invalid code so clients can tell the two apart.

Layer rule: no imports from api/ or projects/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user_id(request: Request) -> str:
    """Require a valid access token and return the user id it was issued to.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user_id: str = Depends(get_current_user_id)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return request.app.state.tokens.validate_access_token(token)
