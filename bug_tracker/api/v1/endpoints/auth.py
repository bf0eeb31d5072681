"""
Authentication Endpoints
Registration, login and profile management
"""

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bug_tracker.core.database import get_db
from bug_tracker.core.deps import get_current_principal, require_roles
from bug_tracker.core.rbac import Principal, Role
from bug_tracker.schemas.auth import LoginRequest, ProfileUpdateRequest, RegisterRequest
from bug_tracker.schemas.base import ApiResponse, ErrorResponse
from bug_tracker.services.auth import auth_service

router = APIRouter()


@router.post(
    "/register",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def register(
    user_data: RegisterRequest,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Public registration; the account always gets the User role

    Returns:
        The new profile with an access token
    """
    user = await auth_service.register(db, user_data)
    return ApiResponse(data=user)


@router.post(
    "/login",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    responses={401: {"model": ErrorResponse}},
)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
) -> Any:
    user = await auth_service.login(db, login_data)
    return ApiResponse(data=user)


@router.get("/profile", response_model=ApiResponse, response_model_exclude_none=True)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
) -> Any:
    profile = await auth_service.get_profile(db, principal)
    return ApiResponse(data=profile)


@router.put("/profile", response_model=ApiResponse, response_model_exclude_none=True)
async def update_profile(
    profile_data: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
) -> Any:
    profile = await auth_service.update_profile(db, principal, profile_data)
    return ApiResponse(data=profile)


@router.post(
    "/admin/register",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def admin_register(
    user_data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.ADMIN))
) -> Any:
    """Register an account with any role (Admin only)"""
    user = await auth_service.register(db, user_data, allow_role=True)
    return ApiResponse(data=user)
