"""auth/ -- Accounts, credentials, and sessions for Taskboard.

Layer rule: auth/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/ or projects/.
api/ and projects/ import from auth/, not the other way around.
"""
