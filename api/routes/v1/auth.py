"""
api/routes/v1/auth.py -- Account lifecycle REST endpoints.

Routes:
  POST /api/v1/auth/register                    -- create unverified account; sends verification email
  POST /api/v1/auth/login                       -- email + password -> access + refresh tokens
  POST /api/v1/auth/refresh-token               -- live refresh token -> new access token
  GET  /api/v1/auth/verify-email/{token}        -- consume a verification token
  POST /api/v1/auth/forgot-password             -- email a reset link (always 202)
  POST /api/v1/auth/reset-password/{token}      -- set a new password with a reset token
  POST /api/v1/auth/logout                      -- revoke the stored refresh token (requires auth)
  GET  /api/v1/auth/current-user                -- current user's profile (requires auth)
  POST /api/v1/auth/change-password             -- old + new password (requires auth)
  POST /api/v1/auth/resend-email-verification   -- new verification token (requires auth)

Security:
  Every unauthenticated credential endpoint is rate-limited per IP.
  Login and refresh responses carry Cache-Control: no-store.
  forgot-password answers identically whether or not the email is registered.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    AccessTokenResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from auth.dependencies import get_current_user_id
from auth.service import AuthService

# Auth policy:
# - register, login, refresh-token, verify-email, forgot/reset-password: public
# - logout, current-user, change-password, resend-email-verification:
#   requires a Bearer access token (get_current_user_id)
router = APIRouter()


def _auth(request: Request) -> AuthService:
    return request.app.state.auth


def _no_store(content: dict, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=content)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit("5/minute")  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create an account and send its verification email.

    The account cannot log in until the emailed link is followed.
    """
    user = _auth(request).register(body.name, body.email, body.password)
    return UserResponse.from_user(user)


@limiter.limit("10/minute")  # brute-force mitigation
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange email and password for an access token and a refresh token.

    Logging in revokes any refresh token issued by an earlier login.
    """
    access_token, refresh_token = _auth(request).login(body.email, body.password)
    expires_in = int(request.app.state.tokens.access_ttl.total_seconds())
    return _no_store(
        LoginResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
        ).model_dump()
    )


@limiter.limit("30/minute")
@router.post("/auth/refresh-token", response_model=AccessTokenResponse)
def refresh_token(request: Request, body: RefreshRequest) -> JSONResponse:
    access_token = _auth(request).refresh_token(body.refresh_token)
    expires_in = int(request.app.state.tokens.access_ttl.total_seconds())
    return _no_store(AccessTokenResponse(access_token=access_token, expires_in=expires_in).model_dump())


@router.get("/auth/verify-email/{token}", response_model=MessageResponse)
def verify_email(request: Request, token: str) -> MessageResponse:
    _auth(request).verify_email(token)
    return MessageResponse(message="Email verified.")


@limiter.limit("5/minute")
@router.post("/auth/forgot-password", response_model=MessageResponse, status_code=202)
def forgot_password(request: Request, body: ForgotPasswordRequest) -> MessageResponse:
    _auth(request).forgot_password(body.email)
    return MessageResponse(message="If that email is registered, a reset link has been sent.")


@limiter.limit("10/minute")
@router.post("/auth/reset-password/{token}", response_model=MessageResponse)
def reset_password(request: Request, token: str, body: ResetPasswordRequest) -> MessageResponse:
    _auth(request).reset_password(token, body.new_password)
    return MessageResponse(message="Password has been reset.")


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, user_id: str = Depends(get_current_user_id)) -> MessageResponse:
    """Revoke the caller's refresh token. Outstanding access tokens live until they expire."""
    _auth(request).logout(user_id)
    return MessageResponse(message="Logged out.")


@router.get("/auth/current-user", response_model=UserResponse)
def current_user(request: Request, user_id: str = Depends(get_current_user_id)) -> UserResponse:
    return UserResponse.from_user(_auth(request).get_current_user(user_id))


@router.post("/auth/change-password", response_model=MessageResponse)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    user_id: str = Depends(get_current_user_id),
) -> MessageResponse:
    _auth(request).change_password(user_id, body.old_password, body.new_password)
    return MessageResponse(message="Password changed.")


@router.post("/auth/resend-email-verification", response_model=MessageResponse, status_code=202)
def resend_email_verification(request: Request, user_id: str = Depends(get_current_user_id)) -> MessageResponse:
    _auth(request).resend_verification_email(user_id)
    return MessageResponse(message="Verification email sent.")
