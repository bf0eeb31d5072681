"""
Bug Endpoints
CRUD for bugs and their comments
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from bug_tracker.core.database import get_db
from bug_tracker.core.deps import get_current_principal, require_roles
from bug_tracker.core.query import parse_query_params
from bug_tracker.core.rbac import Principal, Role
from bug_tracker.schemas.base import ApiResponse, ErrorResponse, Pagination
from bug_tracker.schemas.bug import BugCreate, BugUpdate, CommentCreate
from bug_tracker.services.bug import bug_service

router = APIRouter(
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


@router.get("", response_model=ApiResponse, response_model_exclude_none=True)
async def list_bugs(
    request: Request,
    page: Optional[str] = Query(None, description="1-based page number"),
    limit: Optional[str] = Query(None, description="Page size"),
    sort: Optional[str] = Query(None, description="Comma separated fields, '-' prefix for descending"),
    fields: Optional[str] = Query(None, description="Comma separated projection"),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
) -> Any:
    """
    List bugs

    Any other query parameter filters on the matching field, e.g.
    ``status=Open`` or ``priority[in]=High&priority[in]=Medium``.
    """
    params = parse_query_params(request.query_params.multi_items())
    result = await bug_service.list_bugs(db, params)

    return ApiResponse(
        count=len(result.items),
        total=result.total,
        pagination=Pagination(page=result.page, limit=result.limit, total_pages=result.total_pages),
        data=result.items,
    )


@router.post(
    "",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_bug(
    bug_in: BugCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
) -> Any:
    """Report a new bug owned by the caller"""
    bug = await bug_service.create_bug(db, principal, bug_in)
    return ApiResponse(data=bug)


@router.get("/{bug_id}", response_model=ApiResponse, response_model_exclude_none=True)
async def get_bug(
    bug_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
) -> Any:
    bug = await bug_service.get_bug(db, bug_id)
    return ApiResponse(data=bug)


@router.put("/{bug_id}", response_model=ApiResponse, response_model_exclude_none=True)
async def update_bug(
    bug_id: str,
    bug_in: BugUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
) -> Any:
    """Update a bug; only its creator or an Admin may do so"""
    bug = await bug_service.update_bug(db, principal, bug_id, bug_in)
    return ApiResponse(data=bug)


@router.delete("/{bug_id}", response_model=ApiResponse, response_model_exclude_none=True)
async def delete_bug(
    bug_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.ADMIN))
) -> Any:
    await bug_service.delete_bug(db, principal, bug_id)
    return ApiResponse(message="Bug removed successfully", data={})


@router.post(
    "/{bug_id}/comments",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    bug_id: str,
    comment_in: CommentCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
) -> Any:
    comment = await bug_service.add_comment(db, principal, bug_id, comment_in)
    return ApiResponse(data=comment)


@router.get("/{bug_id}/comments", response_model=ApiResponse, response_model_exclude_none=True)
async def list_comments(
    bug_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
) -> Any:
    comments = await bug_service.list_comments(db, bug_id)
    return ApiResponse(count=len(comments), data=comments)


@router.delete(
    "/{bug_id}/comments/{comment_id}",
    response_model=ApiResponse,
    response_model_exclude_none=True,
)
async def delete_comment(
    bug_id: str,
    comment_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
) -> Any:
    """Delete a comment; allowed for its author, the bug's creator or an Admin"""
    await bug_service.delete_comment(db, principal, bug_id, comment_id)
    return ApiResponse(message="Comment removed successfully", data={})
