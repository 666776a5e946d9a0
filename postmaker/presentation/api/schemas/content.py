from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ....domain.models import Content, ContentTypeStats
from .common import CamelModel


class GenerateContentRequest(CamelModel):
    content_type: str = Field(min_length=1)
    topic: str = Field(min_length=1, max_length=2000)
    keywords: Optional[str] = Field(default=None, max_length=500)


class ContentResponse(CamelModel):
    id: int
    content_type: str
    topic: str
    keywords: Optional[str] = None
    generated_content: str
    word_count: int
    created_at: datetime

    @classmethod
    def from_domain(cls, content: Content) -> "ContentResponse":
        return cls(
            id=content.id,
            content_type=content.content_type,
            topic=content.topic,
            keywords=content.keywords,
            generated_content=content.generated_content,
            word_count=content.word_count,
            created_at=content.created_at,
        )


class GenerateContentResponse(CamelModel):
    message: str
    content: ContentResponse


class ContentSummary(CamelModel):
    """History row without the generated text."""

    id: int
    content_type: str
    topic: str
    keywords: Optional[str] = None
    word_count: int
    created_at: datetime

    @classmethod
    def from_domain(cls, content: Content) -> "ContentSummary":
        return cls(
            id=content.id,
            content_type=content.content_type,
            topic=content.topic,
            keywords=content.keywords,
            word_count=content.word_count,
            created_at=content.created_at,
        )


class OffsetPagination(CamelModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class ContentHistoryResponse(CamelModel):
    content: List[ContentSummary]
    pagination: OffsetPagination


class ContentItemResponse(CamelModel):
    content: ContentResponse


class ContentTypeStatsResponse(CamelModel):
    type: str
    count: int
    total_words: int

    @classmethod
    def from_domain(cls, stats: ContentTypeStats) -> "ContentTypeStatsResponse":
        return cls(type=stats.content_type, count=stats.count, total_words=stats.total_words)


class ContentStatsResponse(CamelModel):
    total_content: int
    by_type: List[ContentTypeStatsResponse]
