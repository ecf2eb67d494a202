"""
Policies - identity resolution and the authorization rule for tasks.

Two halves:

1. Identity resolution. `require_auth()` returns a FastAPI dependency
   that takes the bearer token from the Authorization header, verifies
   it and resolves its subject to a stored user. Any failure is a 401;
   the reason (missing, invalid, expired, not_found) is only logged.

2. The authorization rule. `can_access(principal, resource, operation)`
   allows an operation on a single task iff the principal is an admin or
   owns the task. It is pure: no I/O, no state beyond its arguments.
   Callers must confirm the task exists first and must check before
   mutating (see TaskService).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from taskapi.auth.context import Principal
from taskapi.auth.jwt import ACCESS, TokenExpiredError, TokenInvalidError, TokenSigner
from taskapi.core.errors import AuthenticationError, AuthorizationError
from taskapi.integrations.sentry import set_user

if TYPE_CHECKING:
    from taskapi.services.users import UserService

logger = logging.getLogger(__name__)


# =============================================================================
# Identity Resolution
# =============================================================================


# Doesn't fail on its own when the header is absent; we raise our own 401
optional_bearer = HTTPBearer(auto_error=False)


async def resolve_principal(
    token: str | None,
    signer: TokenSigner,
    users: UserService,
) -> Principal:
    """
    Turn a bearer token into a Principal.

    The token is verified before anything is looked up, so a missing or
    bad credential never reaches the store.

    Raises:
        AuthenticationError: with reason missing / expired / invalid / not_found
    """
    if not token:
        logger.info("Rejected request: no bearer credential supplied")
        raise AuthenticationError("Not authorized, token missing", reason=AuthenticationError.MISSING)

    try:
        payload = signer.decode(token, expected_type=ACCESS)
    except TokenExpiredError:
        logger.info("Rejected request: bearer credential expired")
        raise AuthenticationError("Not authorized, token expired", reason=AuthenticationError.EXPIRED)
    except TokenInvalidError as e:
        logger.info(f"Rejected request: bearer credential invalid ({e})")
        raise AuthenticationError("Not authorized, token invalid", reason=AuthenticationError.INVALID)

    user = await users.get_user(payload.sub)
    if user is None:
        logger.info(f"Rejected request: token subject {payload.sub} not found")
        raise AuthenticationError("Not authorized, user not found", reason=AuthenticationError.NOT_FOUND)

    return Principal.from_user(user)


async def get_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> Principal:
    """Resolve the caller and attach it to the request state."""
    principal = await resolve_principal(
        credentials.credentials if credentials else None,
        signer=request.app.state.signer,
        users=request.app.state.user_service,
    )
    request.state.principal = principal
    set_user(principal.id, principal.email, role=principal.role)
    return principal


def require_auth() -> Callable:
    """Just require authentication."""
    return get_principal


def require_admin() -> Callable:
    """Require an authenticated admin."""

    async def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.is_admin:
            logger.info(f"Denied admin-only route to {principal.id}")
            raise AuthorizationError("Forbidden: Admins access only")
        return principal

    return dependency


# =============================================================================
# Authorization Policy
# =============================================================================


class Operation(str, Enum):
    """Operations on a single task."""

    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


_DENIED_MESSAGES = {
    Operation.READ: "Forbidden: You do not have access to this task",
    Operation.UPDATE: "Forbidden: You do not have permission to update this task",
    Operation.DELETE: "Forbidden: You do not have permission to delete this task",
}


def owner_id_of(resource: Any) -> str | None:
    """
    Canonical owner id of a resource.

    Accepts a model or a dict, and an owner that is either an id or a
    populated user (dict or object carrying an id).
    """
    owner = resource.get("owner") if isinstance(resource, dict) else getattr(resource, "owner", None)
    if owner is None:
        return None
    if isinstance(owner, dict):
        owner = owner.get("id")
    elif not isinstance(owner, str) and hasattr(owner, "id"):
        owner = owner.id
    return str(owner) if owner is not None else None


def can_access(principal: Principal, resource: Any, operation: Operation | str) -> Decision:
    """
    Decide whether `principal` may perform `operation` on `resource`.

    Allowed iff the principal is an admin or owns the resource. The same
    rule applies to read, update and delete.
    """
    operation = Operation(operation)

    if principal.is_admin:
        return Decision(True)

    owner_id = owner_id_of(resource)
    if owner_id is not None and owner_id == str(principal.id):
        return Decision(True)

    return Decision(False, _DENIED_MESSAGES[operation])


def enforce(principal: Principal, resource: Any, operation: Operation | str) -> None:
    """Raise AuthorizationError unless can_access() allows."""
    decision = can_access(principal, resource, operation)
    if not decision:
        resource_id = resource.get("id") if isinstance(resource, dict) else getattr(resource, "id", None)
        logger.info(f"Denied {Operation(operation).value} on {resource_id} to {principal.id}")
        raise AuthorizationError(decision.reason)
