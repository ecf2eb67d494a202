# =============================================================================
# User API Routes
# =============================================================================
#
# Endpoints:
#   POST /users/register  - Create account, returns identity + tokens
#   POST /users/login     - Verify credentials, returns identity + tokens
#   POST /users/refresh   - Exchange refresh token for a new pair
#   POST /users/logout    - Acknowledge logout (client discards tokens)
#   GET  /users/profile   - Current user's public fields
#   GET  /users/admin     - Admin-only example resource
#
# =============================================================================

from fastapi import APIRouter, Depends, status
from pydantic import EmailStr, Field

from taskapi.api.dependencies import get_user_service
from taskapi.api.responses import ok
from taskapi.auth.context import Principal
from taskapi.auth.jwt import TokenPair
from taskapi.auth.policies import require_admin, require_auth
from taskapi.core.models import CamelModel, User, UserCreate
from taskapi.services import UserService

router = APIRouter(prefix="/users", tags=["users"])


# =============================================================================
# Request/Response Models
# =============================================================================

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class AuthResponse(CamelModel):
    id: str
    name: str
    email: str
    role: str
    token: str
    refresh_token: str
    expires_in: int

    @classmethod
    def build(cls, user: User, tokens: TokenPair) -> "AuthResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=tokens.expires_in,
        )


# =============================================================================
# Public Endpoints
# =============================================================================

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    data: UserCreate,
    users: UserService = Depends(get_user_service),
):
    """
    Create a new account.

    Returns identity and tokens on success; 409 if the email is taken.
    """
    user, tokens = await users.register(data)
    return ok(AuthResponse.build(user, tokens).to_wire())


@router.post("/login")
async def login(
    data: LoginRequest,
    users: UserService = Depends(get_user_service),
):
    """Authenticate and get tokens."""
    user, tokens = await users.login(data.email, data.password)
    return ok(AuthResponse.build(user, tokens).to_wire())


@router.post("/refresh")
async def refresh(
    data: RefreshRequest,
    users: UserService = Depends(get_user_service),
):
    """Use refresh token to get new access token."""
    user, tokens = await users.refresh(data.refresh_token)
    return ok(AuthResponse.build(user, tokens).to_wire())


# =============================================================================
# Protected Endpoints
# =============================================================================

@router.post("/logout")
async def logout(principal: Principal = Depends(require_auth())):
    """
    Logout (client should discard tokens).

    Tokens are stateless, so nothing is revoked server-side.
    """
    return ok(message="Logged out successfully")


@router.get("/profile")
async def profile(principal: Principal = Depends(require_auth())):
    """Get the current authenticated user."""
    return ok(principal.public().to_wire())


@router.get("/admin")
async def admin(principal: Principal = Depends(require_admin())):
    """Admin-only test route."""
    return ok(
        {"id": principal.id, "email": principal.email},
        message="Welcome, Admin!",
    )
