"""
Authentication Service
Registration, login and profile management
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bug_tracker.core.errors import NotFound, Unauthenticated, Unexpected, ValidationFailed
from bug_tracker.core.rbac import Principal, Role
from bug_tracker.core.security import TokenCodec, get_password_hash, token_codec, verify_password
from bug_tracker.models.user import User
from bug_tracker.repositories.user import user_repository
from bug_tracker.schemas.auth import (
    AuthenticatedUser,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserProfile,
)

USER_EXISTS = "User already exists"
INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    def __init__(self, codec: TokenCodec = token_codec, logger: Any = None) -> None:
        self.codec = codec
        self.users = user_repository
        self.logger = logger or structlog.get_logger()

    def _with_token(self, user: User) -> Dict[str, Any]:
        token = self.codec.issue(Principal(id=user.id, role=Role(user.role)))
        profile = UserProfile.model_validate(user).model_dump()
        return AuthenticatedUser(**profile, token=token).model_dump(mode="json", by_alias=True)

    async def register(
        self,
        db: AsyncSession,
        data: RegisterRequest,
        *,
        allow_role: bool = False
    ) -> Dict[str, Any]:
        """
        Create an account and sign it in

        Args:
            db: Database session
            data: Registration payload
            allow_role: Honour ``data.role``; otherwise the account is a plain User

        Raises:
            ValidationFailed: the email is already registered
        """
        role = Role(data.role) if allow_role else Role.USER

        try:
            existing = await self.users.get_by_email(db, data.email)
        except SQLAlchemyError as exc:
            self.logger.error("User lookup failed", email=data.email, error=str(exc))
            raise Unexpected("Server error while registering user") from exc
        if existing:
            self.logger.warning("Registration attempt with existing email", email=data.email)
            raise ValidationFailed(USER_EXISTS)

        hashed_password = await asyncio.to_thread(get_password_hash, data.password)
        try:
            user = await self.users.insert(db, {
                "name": data.name,
                "email": data.email,
                "hashed_password": hashed_password,
                "role": role.value,
            })
        except IntegrityError as exc:
            raise ValidationFailed(USER_EXISTS) from exc
        except SQLAlchemyError as exc:
            self.logger.error("User creation failed", email=data.email, error=str(exc))
            raise Unexpected("Server error while registering user") from exc

        self.logger.info("User registered", user_id=str(user.id), role=role.value)
        return self._with_token(user)

    async def login(self, db: AsyncSession, data: LoginRequest) -> Dict[str, Any]:
        """
        Check credentials and issue a token

        Raises:
            Unauthenticated: unknown email or wrong password
        """
        try:
            user = await self.users.get_by_email(db, data.email)
        except SQLAlchemyError as exc:
            self.logger.error("User lookup failed", email=data.email, error=str(exc))
            raise Unexpected("Server error while logging in") from exc

        if user is None:
            self.logger.warning("Login attempt with non-existent email", email=data.email)
            raise Unauthenticated(INVALID_CREDENTIALS)

        password_valid = await asyncio.to_thread(verify_password, data.password, user.hashed_password)
        if not password_valid:
            self.logger.warning("Login attempt with invalid password", user_id=str(user.id))
            raise Unauthenticated(INVALID_CREDENTIALS)

        self.logger.info("User logged in", user_id=str(user.id))
        return self._with_token(user)

    async def _load_user(self, db: AsyncSession, principal: Principal) -> User:
        user = await self.users.find_by_id(db, principal.id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_profile(self, db: AsyncSession, principal: Principal) -> Dict[str, Any]:
        user = await self._load_user(db, principal)
        return UserProfile.model_validate(user).model_dump(mode="json", by_alias=True)

    async def update_profile(
        self,
        db: AsyncSession,
        principal: Principal,
        data: ProfileUpdateRequest
    ) -> Dict[str, Any]:
        """
        Apply a partial profile update and return the profile with a new token
        """
        user = await self._load_user(db, principal)
        patch = data.model_dump(exclude_unset=True, exclude_none=True)

        new_email: Optional[str] = patch.get("email")
        if new_email and new_email != user.email:
            other = await self.users.get_by_email(db, new_email)
            if other is not None and other.id != user.id:
                raise ValidationFailed(USER_EXISTS)

        password = patch.pop("password", None)
        if password:
            patch["hashed_password"] = await asyncio.to_thread(get_password_hash, password)

        try:
            updated = await self.users.update_by_id(db, user.id, patch)
        except IntegrityError as exc:
            raise ValidationFailed(USER_EXISTS) from exc
        except SQLAlchemyError as exc:
            self.logger.error("Profile update failed", user_id=str(user.id), error=str(exc))
            raise Unexpected("Server error while updating profile") from exc
        if updated is None:
            raise NotFound("User not found")

        self.logger.info("Profile updated", user_id=str(user.id), fields=sorted(patch))
        return self._with_token(updated)


auth_service = AuthService()
