from __future__ import annotations

import logging
from typing import Dict, Optional

from openai import AsyncOpenAI

from ..domain.ports.providers import ContentGenerationError, ContentGenerator

logger = logging.getLogger(__name__)

_CONTENT_PROFILES: Dict[str, Dict[str, str]] = {
    "Blog Post": {
        "length": "600-900 words",
        "structure": """
- Compelling headline
- Engaging introduction with a hook
- 3-5 well-structured sections with subheadings
- Actionable insights or takeaways
- Strong conclusion with call-to-action""",
        "tone": "professional yet conversational, informative and engaging",
    },
    "X/Threads Post": {
        "length": "3-7 tweets (280 characters each)",
        "structure": """
- Start with an attention-grabbing hook
- Number each tweet (1/7, 2/7, etc.)
- One main idea per tweet
- End with a compelling conclusion or CTA
- Use emojis strategically for visual appeal""",
        "tone": "conversational, punchy, and shareable",
    },
    "LinkedIn Post": {
        "length": "150-300 words",
        "structure": """
- Personal or professional hook in first line
- Share a story, insight, or valuable lesson
- Use short paragraphs (1-2 sentences each)
- Include relevant hashtags (3-5)
- End with a question or CTA to encourage engagement""",
        "tone": "professional, authentic, and thought-provoking",
    },
}

_SYSTEM_PROMPT = """You are an expert content creator specializing in SEO and AI-optimized content.
Write ONLY the content itself - no preamble, no explanations, no meta-commentary.
Start directly with the content."""


def build_prompt(content_type: str, topic: str, keywords: Optional[str]) -> str:
    profile = _CONTENT_PROFILES.get(content_type, _CONTENT_PROFILES["Blog Post"])
    keywords_section = f"\n\nKeywords to naturally incorporate: {keywords}" if keywords else ""
    return f"""Create a {content_type} about the following topic:

{topic}{keywords_section}

Requirements:
- Length: {profile["length"]}
- Tone: {profile["tone"]}
- Structure: {profile["structure"]}

SEO & AI Optimization Guidelines:
1. Use clear, descriptive language that both humans and AI can easily understand
2. Include relevant keywords naturally throughout the content
3. Create scannable content with clear structure
4. Focus on providing genuine value and answering user intent
5. Use active voice and strong verbs
6. Make it engaging and shareable"""


class OpenAIContentGenerator(ContentGenerator):
    """Wrapper around the OpenAI Responses API producing marketing copy."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        *,
        max_output_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> None:
        self._model = model
        self._max_output_tokens = max_output_tokens
        self._temperature = temperature
        self._client = AsyncOpenAI(api_key=api_key) if api_key else None

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def generate(self, content_type: str, topic: str, keywords: Optional[str]) -> str:
        if not topic or not topic.strip():
            raise ValueError("Cannot generate content without a topic.")
        if not self._client:
            raise ContentGenerationError("AI service configuration error: OpenAI API key is not set.")

        try:
            response = await self._client.responses.create(
                model=self._model,
                instructions=_SYSTEM_PROMPT,
                input=build_prompt(content_type, topic.strip(), keywords),
                max_output_tokens=self._max_output_tokens,
                temperature=self._temperature,
            )
        except Exception as exc:  # pragma: no cover - depends on external API
            logger.exception("OpenAI API error while generating content.")
            raise ContentGenerationError("Failed to generate content with AI") from exc

        text = getattr(response, "output_text", None)
        if not text:
            text_chunks = []
            for block in getattr(response, "output", []) or []:
                for item in getattr(block, "content", []) or []:
                    if getattr(item, "type", None) in ("output_text", "text"):
                        text_chunks.append(item.text)
            text = "\n\n".join(text_chunks)
        text = (text or "").strip()
        if not text:
            raise ContentGenerationError("AI returned an empty response")
        return text
