"""
api/limiter.py -- Shared slowapi rate limiter instance.

api/main.py mounts it as middleware; api/routes/v1/auth.py applies per-route
limits with @limiter.limit() on the unauthenticated credential endpoints
(register, login, refresh, forgot/reset password).

All routes must share this one instance so they share one counter store.
Tests switch it off with limiter.enabled = False.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
