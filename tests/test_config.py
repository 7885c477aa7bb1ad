"""
tests/test_config.py -- Unit tests for core/config.py secret policy.

Settings is constructed directly with keyword arguments, which take priority
over environment variables, so these tests do not depend on the DEBUG value
conftest.py puts in the environment.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings

ACCESS = "a" * 40
REFRESH = "r" * 40


def test_production_requires_secrets():
    with pytest.raises(ValidationError, match="JWT_ACCESS_SECRET is required"):
        Settings(debug=False, jwt_access_secret="", jwt_refresh_secret=REFRESH)


def test_debug_generates_missing_secrets():
    settings = Settings(debug=True, jwt_access_secret="", jwt_refresh_secret="")
    assert len(settings.jwt_access_secret) >= 32
    assert len(settings.jwt_refresh_secret) >= 32
    assert settings.jwt_access_secret != settings.jwt_refresh_secret


def test_short_secret_rejected():
    with pytest.raises(ValidationError, match="at least 32"):
        Settings(debug=False, jwt_access_secret="short", jwt_refresh_secret=REFRESH)


def test_identical_secrets_rejected():
    with pytest.raises(ValidationError, match="must differ"):
        Settings(debug=False, jwt_access_secret=ACCESS, jwt_refresh_secret=ACCESS)


def test_non_positive_lifetime_rejected():
    with pytest.raises(ValidationError, match="positive"):
        Settings(debug=False, jwt_access_secret=ACCESS, jwt_refresh_secret=REFRESH, access_token_expire_minutes=0)


def test_defaults():
    settings = Settings(debug=False, jwt_access_secret=ACCESS, jwt_refresh_secret=REFRESH)
    assert settings.access_token_expire_minutes == 15
    assert settings.refresh_token_expire_days == 7
    assert settings.reset_token_expire_minutes == 60
