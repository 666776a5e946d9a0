import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ....application.services.content_service import ContentService
from ....core.dependencies import get_content_service
from ....domain.models import User
from ....domain.ports.providers import ContentGenerationError
from ...api.dependencies import get_current_user, require_content_access
from ...api.schemas.content import (
    ContentHistoryResponse,
    ContentItemResponse,
    ContentResponse,
    ContentStatsResponse,
    ContentSummary,
    ContentTypeStatsResponse,
    GenerateContentRequest,
    GenerateContentResponse,
    OffsetPagination,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/content", tags=["Content"])


@router.post("/generate", response_model=GenerateContentResponse)
async def generate_content(
    payload: GenerateContentRequest,
    user: User = Depends(require_content_access),
    content_service: ContentService = Depends(get_content_service),
) -> GenerateContentResponse:
    try:
        content = await content_service.generate(
            user.id, payload.content_type, payload.topic, payload.keywords
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ContentGenerationError as exc:
        logger.error("Content generation failed for user %s: %s", user.id, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return GenerateContentResponse(
        message="Content generated successfully",
        content=ContentResponse.from_domain(content),
    )


@router.get("/history", response_model=ContentHistoryResponse)
async def content_history(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    content_type: Optional[str] = Query(default=None, alias="contentType"),
    user: User = Depends(get_current_user),
    content_service: ContentService = Depends(get_content_service),
) -> ContentHistoryResponse:
    items, total = content_service.history(user.id, content_type=content_type, limit=limit, offset=offset)
    return ContentHistoryResponse(
        content=[ContentSummary.from_domain(item) for item in items],
        pagination=OffsetPagination(total=total, limit=limit, offset=offset, has_more=total > offset + limit),
    )


@router.get("/stats", response_model=ContentStatsResponse)
async def content_stats(
    user: User = Depends(get_current_user),
    content_service: ContentService = Depends(get_content_service),
) -> ContentStatsResponse:
    stats = content_service.stats(user.id)
    return ContentStatsResponse(
        total_content=sum(stat.count for stat in stats),
        by_type=[ContentTypeStatsResponse.from_domain(stat) for stat in stats],
    )


@router.get("/{content_id}", response_model=ContentItemResponse)
async def get_content(
    content_id: int,
    user: User = Depends(get_current_user),
    content_service: ContentService = Depends(get_content_service),
) -> ContentItemResponse:
    try:
        content = content_service.get(user.id, content_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return ContentItemResponse(content=ContentResponse.from_domain(content))


@router.delete("/{content_id}")
async def delete_content(
    content_id: int,
    user: User = Depends(get_current_user),
    content_service: ContentService = Depends(get_content_service),
) -> Dict[str, str]:
    try:
        content_service.delete(user.id, content_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"message": "Content deleted successfully"}
