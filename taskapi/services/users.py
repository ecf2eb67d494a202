"""
User service - registration, login and identity lookups.

Backed by the users collection of the document store. Emails are
normalised to lower case and unique; the store's unique index is the
final arbiter when two registrations race.
"""

from __future__ import annotations

import logging

import pydantic

from taskapi.auth.jwt import (
    REFRESH,
    TokenExpiredError,
    TokenInvalidError,
    TokenPair,
    TokenSigner,
    hash_password,
    verify_password,
)
from taskapi.core.errors import AuthenticationError, ConflictError, NotFoundError
from taskapi.core.models import Role, User, UserCreate
from taskapi.core.utils import generate_id, utc_now
from taskapi.storage import Collections, DuplicateKeyError, StorageProvider

logger = logging.getLogger(__name__)


class UserService:
    """Credential store operations plus token issuance."""

    def __init__(
        self,
        storage: StorageProvider,
        signer: TokenSigner,
        password_iterations: int = 100_000,
    ):
        self.storage = storage
        self.signer = signer
        self.password_iterations = password_iterations

    @property
    def _docs(self):
        return self.storage.documents

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        """Get user by ID."""
        doc = await self._docs.get(Collections.USERS, user_id)
        return User.model_validate(doc) if doc else None

    async def get_user_by_email(self, email: str) -> User | None:
        """Get user by email."""
        doc = await self._docs.find_one(Collections.USERS, {"email": email.lower()})
        return User.model_validate(doc) if doc else None

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    async def create_user(self, data: UserCreate, role: Role = Role.USER) -> User:
        """
        Create a new user.

        Raises:
            ConflictError: the email is already registered
        """
        email = data.email.lower()
        if await self.get_user_by_email(email):
            raise ConflictError("User already exists")

        now = utc_now()
        user = User(
            id=generate_id("user"),
            name=data.name,
            email=email,
            password_hash=hash_password(data.password, self.password_iterations),
            role=role,
            created_at=now,
            updated_at=now,
        )

        try:
            await self._docs.insert(Collections.USERS, user.id, user.model_dump())
        except DuplicateKeyError:
            # Lost a race with a concurrent registration for the same email
            raise ConflictError("User already exists")

        logger.info(f"Registered user {user.id} ({user.role})")
        return user

    async def register(self, data: UserCreate) -> tuple[User, TokenPair]:
        """Create a regular user and issue tokens."""
        user = await self.create_user(data, role=Role.USER)
        return user, self.signer.create_token_pair(user.id)

    async def set_role(self, user_id: str, role: Role) -> User:
        """Change a user's role."""
        doc = await self._docs.update(
            Collections.USERS,
            user_id,
            {"role": Role(role).value, "updated_at": utc_now()},
        )
        if doc is None:
            raise NotFoundError("User not found")
        logger.info(f"Role of {user_id} set to {Role(role).value}")
        return User.model_validate(doc)

    async def ensure_admin(self, email: str, password: str, name: str) -> User:
        """Make sure an admin with this email exists (startup bootstrap)."""
        existing = await self.get_user_by_email(email)
        if existing is None:
            try:
                data = UserCreate(name=name, email=email, password=password)
            except pydantic.ValidationError as e:
                problems = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
                )
                raise ValueError(f"Invalid bootstrap admin settings: {problems}") from e
            return await self.create_user(data, role=Role.ADMIN)
        if not existing.is_admin:
            return await self.set_role(existing.id, Role.ADMIN)
        return existing

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def authenticate(self, email: str, password: str) -> User | None:
        """Authenticate user by email and password."""
        user = await self.get_user_by_email(email)
        if not user:
            return None
        if not verify_password(password, user.password_hash, self.password_iterations):
            return None
        return user

    async def login(self, email: str, password: str) -> tuple[User, TokenPair]:
        """
        Verify credentials and issue tokens.

        Unknown email and wrong password fail identically.
        """
        user = await self.authenticate(email, password)
        if not user:
            logger.info("Failed login attempt")
            raise AuthenticationError("Invalid email or password")
        return user, self.signer.create_token_pair(user.id)

    async def refresh(self, refresh_token: str) -> tuple[User, TokenPair]:
        """Use a refresh token to get new access and refresh tokens."""
        try:
            payload = self.signer.decode(refresh_token, expected_type=REFRESH)
        except TokenExpiredError:
            raise AuthenticationError(
                "Refresh token expired, please login again",
                reason=AuthenticationError.EXPIRED,
            )
        except TokenInvalidError as e:
            logger.info(f"Rejected refresh token: {e}")
            raise AuthenticationError("Invalid refresh token", reason=AuthenticationError.INVALID)

        user = await self.get_user(payload.sub)
        if user is None:
            raise AuthenticationError("Not authorized, user not found", reason=AuthenticationError.NOT_FOUND)
        return user, self.signer.create_token_pair(user.id)
