from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ...domain.models import CONTENT_TYPE_LABELS, Content, ContentTypeStats
from ...domain.ports.persistence import ContentRepository
from ...domain.ports.providers import ContentGenerator

logger = logging.getLogger(__name__)


def count_words(text: str) -> int:
    return len(text.split())


class ContentService:
    """Generates content through the AI provider and keeps each user's history."""

    def __init__(self, repository: ContentRepository, generator: ContentGenerator) -> None:
        self._repository = repository
        self._generator = generator

    async def generate(
        self, user_id: int, content_label: str, topic: str, keywords: Optional[str]
    ) -> Content:
        content_type = CONTENT_TYPE_LABELS.get(content_label)
        if content_type is None:
            raise ValueError(f"Unsupported content type: {content_label}")
        topic = topic.strip()
        if not topic:
            raise ValueError("Content type and topic are required")
        keywords = (keywords or "").strip() or None

        text = await self._generator.generate(content_label, topic, keywords)
        content = self._repository.create_content(
            user_id=user_id,
            content_type=content_type,
            topic=topic,
            keywords=keywords,
            generated_content=text,
            word_count=count_words(text),
        )
        logger.info("Generated %s content %s for user %s", content_type, content.id, user_id)
        return content

    def history(
        self,
        user_id: int,
        *,
        content_type: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Content], int]:
        return self._repository.list_content(user_id, content_type=content_type, limit=limit, offset=offset)

    def get(self, user_id: int, content_id: int) -> Content:
        content = self._repository.get_content(content_id, user_id)
        if content is None:
            raise LookupError("Content not found")
        return content

    def delete(self, user_id: int, content_id: int) -> None:
        if not self._repository.delete_content(content_id, user_id):
            raise LookupError("Content not found")
        logger.info("Deleted content %s of user %s", content_id, user_id)

    def stats(self, user_id: int) -> List[ContentTypeStats]:
        return self._repository.get_content_stats(user_id)
