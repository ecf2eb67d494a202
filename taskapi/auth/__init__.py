"""
Authentication and authorization.

Design principles:
1. One dependency resolves the caller: `Depends(require_auth())`
2. One rule decides task access: `can_access(principal, task, operation)`
3. Owner or admin; nothing finer-grained
4. Signing key and stores are passed in, never module globals

The `/users` router lives in taskapi.auth.routes and is mounted by the app.
"""

from taskapi.auth.context import Principal
from taskapi.auth.policies import (
    Decision,
    Operation,
    can_access,
    enforce,
    get_principal,
    require_admin,
    require_auth,
    resolve_principal,
)
from taskapi.auth.jwt import (
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenPair,
    TokenSigner,
    hash_password,
    verify_password,
)

__all__ = [
    # Main interface
    "require_auth",
    "require_admin",
    "get_principal",
    "resolve_principal",
    "can_access",
    "enforce",
    # Types
    "Principal",
    "Operation",
    "Decision",
    # JWT
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenPair",
    "TokenSigner",
    "hash_password",
    "verify_password",
]
