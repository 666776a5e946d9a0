from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ....application.services.admin_service import AdminService
from ....core.dependencies import get_admin_service, get_clock
from ...api.dependencies import require_admin_user
from ...api.schemas.admin import (
    AdminStatsResponse,
    AdminUserContentResponse,
    AdminUserDetails,
    AdminUserDetailsResponse,
    AdminUserListResponse,
    AdminUserRow,
    PagePagination,
)
from ...api.schemas.content import ContentResponse

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin_user)])

_SORT_FIELDS = {
    "createdAt": "created_at",
    "email": "email",
    "firstName": "first_name",
    "lastName": "last_name",
}


@router.get("/stats", response_model=AdminStatsResponse)
async def admin_stats(admin_service: AdminService = Depends(get_admin_service)) -> AdminStatsResponse:
    return AdminStatsResponse(**admin_service.platform_stats())


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    admin_service: AdminService = Depends(get_admin_service),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AdminUserListResponse:
    if sort_by not in _SORT_FIELDS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Cannot sort users by {sort_by}")
    try:
        summaries, total = admin_service.list_users(
            search=search,
            status=status_filter,
            sort_by=_SORT_FIELDS[sort_by],
            sort_order=sort_order.lower(),
            page=page,
            limit=limit,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    now = clock()
    return AdminUserListResponse(
        users=[AdminUserRow.from_summary(summary, now) for summary in summaries],
        pagination=PagePagination.build(total, page, limit),
    )


@router.get("/users/{user_id}", response_model=AdminUserDetailsResponse)
async def user_details(
    user_id: int,
    admin_service: AdminService = Depends(get_admin_service),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AdminUserDetailsResponse:
    try:
        details = admin_service.user_details(user_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return AdminUserDetailsResponse(user=AdminUserDetails.from_details(details, clock()))


@router.get("/users/{user_id}/content", response_model=AdminUserContentResponse)
async def user_content(
    user_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    admin_service: AdminService = Depends(get_admin_service),
) -> AdminUserContentResponse:
    try:
        items, total = admin_service.user_content(user_id, page=page, limit=limit)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return AdminUserContentResponse(
        content=[ContentResponse.from_domain(item) for item in items],
        pagination=PagePagination.build(total, page, limit),
    )
