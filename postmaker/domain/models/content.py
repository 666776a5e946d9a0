from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

# Labels shown in the UI mapped to the stored content type.
CONTENT_TYPE_LABELS: Dict[str, str] = {
    "Blog Post": "blog",
    "X/Threads Post": "x_threads",
    "LinkedIn Post": "linkedin",
}


@dataclass(slots=True)
class Content:
    id: int
    user_id: int
    content_type: str
    topic: str
    keywords: Optional[str]
    generated_content: str
    word_count: int
    created_at: datetime


@dataclass(slots=True)
class ContentTypeStats:
    content_type: str
    count: int
    total_words: int
