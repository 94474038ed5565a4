"""AI quiz generation for topic-based challenges via the Claude API."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import anthropic

from studyhub.challenges.errors import ContentGenerationError
from studyhub.config import Settings

logger = logging.getLogger(__name__)


class ContentGenerator(Protocol):
    async def generate_quiz(
        self,
        *,
        topic: str,
        difficulty: str,
        number_of_questions: int,
        quiz_type: str = "standard",
    ) -> dict[str, Any]:
        """Return ``{"title", "topic", "questions": [...]}``."""
        ...


def parse_quiz_payload(text: str, fallback_topic: str) -> dict[str, Any]:
    """Parse the model's JSON quiz, tolerating a surrounding code fence."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end == -1:
        raise ContentGenerationError("Generated quiz is not a JSON object")

    try:
        payload = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as e:
        raise ContentGenerationError(f"Generated quiz is not valid JSON: {e}") from e

    questions = payload.get("questions")
    if not isinstance(questions, list) or not questions:
        raise ContentGenerationError("Generated quiz has no questions")

    return {
        "title": str(payload.get("title") or f"{fallback_topic} Quiz"),
        "topic": str(payload.get("topic") or fallback_topic),
        "questions": questions,
    }


class AnthropicContentGenerator:
    """Generate quizzes with the Claude messages API."""

    def __init__(self, api_key: str, model: str, max_tokens: int = 4096) -> None:
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> AnthropicContentGenerator | None:
        if not settings.anthropic_api_key:
            logger.warning("No Anthropic API key configured, topic challenges disabled")
            return None
        return cls(settings.anthropic_api_key, settings.anthropic_model, settings.anthropic_max_tokens)

    async def generate_quiz(
        self,
        *,
        topic: str,
        difficulty: str,
        number_of_questions: int,
        quiz_type: str = "standard",
    ) -> dict[str, Any]:
        prompt = (
            f"Generate a {difficulty} {quiz_type} quiz with {number_of_questions} questions "
            f"about: {topic}\n\n"
            "Return ONLY a JSON object of the form "
            '{"title": str, "topic": str, "questions": [{"questionType": "single-select", '
            '"question": str, "options": [str], "correctAnswer": int, "explanation": str}]}'
        )

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            raise ContentGenerationError(f"Quiz generation request failed: {e}") from e

        text = "".join(block.text for block in response.content if block.type == "text")
        return parse_quiz_payload(text, topic)
