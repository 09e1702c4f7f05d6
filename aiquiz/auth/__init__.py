"""
Authentication and authorization for the manager back-office.

- Passwords are hashed with PBKDF2 (passwords.py)
- Logins get a signed JWT session token (jwt.py)
- Invitations and password resets use hashed one-time tokens (tokens.py)
- Every protected route goes through one dependency: require() (policies.py)
"""

from aiquiz.auth.context import AuthContext
from aiquiz.auth.policies import (
    Policy,
    Transport,
    require,
    require_admin,
    require_auth,
    require_professor,
)
from aiquiz.auth.roles import ROLE_ORDER, role_satisfies
from aiquiz.auth.jwt import (
    SessionClaims,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenScopeError,
    create_download_token,
    create_session_token,
    decode_session_token,
    verify_download_token,
)
from aiquiz.auth.passwords import hash_password, verify_password
from aiquiz.auth.tokens import TokenPurpose, find_user_by_token, issue_token
from aiquiz.auth.users import UserStore
from aiquiz.auth.routes import router as auth_router

__all__ = [
    # Main interface
    "require",
    "require_auth",
    "require_professor",
    "require_admin",
    "AuthContext",
    "Policy",
    "Transport",
    "ROLE_ORDER",
    "role_satisfies",
    # Tokens
    "SessionClaims",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenScopeError",
    "create_session_token",
    "decode_session_token",
    "create_download_token",
    "verify_download_token",
    "TokenPurpose",
    "issue_token",
    "find_user_by_token",
    # Credentials
    "UserStore",
    "hash_password",
    "verify_password",
    # Router
    "auth_router",
]
