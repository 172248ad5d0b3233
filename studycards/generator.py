"""
Flashcard generation through an OpenAI-compatible chat completion API.

The generator sends study notes with an instruction prompt, extracts the JSON
payload from the reply, and validates it into FlashcardDraft models. Every
failure is raised to the caller as a GenerationError; nothing is retried or
replaced with placeholder content here.
"""

import html
import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

import bleach
from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from .config import Settings, get_settings
from .exceptions import GenerationError
from .models import FlashcardDraft

logger = logging.getLogger(__name__)

GENERATION_SYSTEM_PROMPT = (
    "You are an expert educational content creator specializing in creating "
    "effective study flashcards. Always respond with valid JSON."
)

IMPROVEMENT_SYSTEM_PROMPT = (
    "You are an expert educational content creator. "
    "Always respond with valid JSON."
)

DIFFICULTY_CHOICES = ("easy", "medium", "hard", "mixed")

# Cards are shown as plain terminal text, so no HTML tag survives cleaning.
ALLOWED_HTML_TAGS: List[str] = []

_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def build_generation_prompt(
    text: str,
    count: int,
    difficulty: str = "mixed",
    categories: Sequence[str] = (),
) -> str:
    """Build the user prompt asking for `count` flashcards from `text`."""
    focus_lines = []
    if difficulty != "mixed":
        focus_lines.append(f"- Focus on {difficulty} difficulty level")
    if categories:
        focus_lines.append(
            f"- Focus on these categories: {', '.join(categories)}"
        )
    focus = "\n".join(focus_lines)

    return f"""
You are an expert educational content creator. Generate {count} high-quality flashcards from the following text.

Text content:
{text}

Instructions:
- Create diverse, meaningful questions that test understanding
- Include a mix of factual recall and conceptual understanding
- Questions should be clear and unambiguous
- Answers should be concise but complete
- Assign appropriate difficulty levels: easy, medium, hard
- Categorize each flashcard by topic/subject
- Add relevant tags for better organization
{focus}

Return the flashcards as a JSON array with this exact format:
[
  {{
    "question": "Clear, specific question",
    "answer": "Concise, accurate answer",
    "category": "Subject/topic name",
    "difficulty": "easy|medium|hard",
    "tags": ["tag1", "tag2", "tag3"]
  }}
]

Ensure the JSON is valid and properly formatted."""


def build_improvement_prompt(draft: FlashcardDraft) -> str:
    """Build the user prompt asking for an improved version of `draft`."""
    return f"""
Improve this flashcard to make it more effective for learning:

Original flashcard:
Question: {draft.question}
Answer: {draft.answer}
Category: {draft.category}
Difficulty: {draft.difficulty.value}

Instructions:
- Make the question clearer and more specific
- Ensure the answer is concise but complete
- Maintain the same difficulty level and category
- Improve tags for better organization

Return the improved flashcard as JSON with this format:
{{
  "question": "Improved question",
  "answer": "Improved answer",
  "category": "{draft.category}",
  "difficulty": "{draft.difficulty.value}",
  "tags": ["improved", "tags"]
}}"""


def sanitize_text(value: str) -> str:
    """
    Strip HTML tags from model output and return plain text.

    bleach escapes `<`, `>` and `&` in the text it keeps; those entities are
    decoded again so "3 < 5" is stored as written.
    """
    cleaned = bleach.clean(value, tags=ALLOWED_HTML_TAGS, strip=True)
    return html.unescape(cleaned).strip()


def _sanitize_card_dict(raw: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(raw)
    for key in ("question", "answer", "category"):
        if isinstance(data.get(key), str):
            data[key] = sanitize_text(data[key])
    tags = data.get("tags")
    if isinstance(tags, list):
        data["tags"] = [
            sanitize_text(t) for t in tags if isinstance(t, str)
        ]
    return data


def parse_flashcards_response(content: str) -> List[FlashcardDraft]:
    """
    Extract and validate the JSON array of flashcards from a model reply.

    Raises:
        GenerationError: If no array is present, it is not valid JSON, or an
            entry is missing question, answer, category or difficulty.
    """
    match = _JSON_ARRAY_RE.search(content)
    if not match:
        raise GenerationError("No valid JSON array found in response")

    try:
        raw_cards = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise GenerationError(
            f"Response JSON could not be parsed: {e}", original_exception=e
        ) from e

    drafts: List[FlashcardDraft] = []
    for index, raw in enumerate(raw_cards):
        if not isinstance(raw, dict) or not all(
            raw.get(key)
            for key in ("question", "answer", "category", "difficulty")
        ):
            raise GenerationError(
                f"Invalid flashcard structure at index {index}"
            )
        try:
            drafts.append(FlashcardDraft(**_sanitize_card_dict(raw)))
        except ValidationError as e:
            raise GenerationError(
                f"Invalid flashcard structure at index {index}: {e}",
                original_exception=e,
            ) from e
    return drafts


def parse_improved_flashcard(content: str) -> FlashcardDraft:
    """Extract and validate a single JSON flashcard object from a reply."""
    match = _JSON_OBJECT_RE.search(content)
    if not match:
        raise GenerationError("No valid JSON object found in response")
    try:
        raw = json.loads(match.group(0))
        return FlashcardDraft(**_sanitize_card_dict(raw))
    except (json.JSONDecodeError, TypeError, ValidationError) as e:
        raise GenerationError(
            f"Improved flashcard could not be parsed: {e}",
            original_exception=e,
        ) from e


class FlashcardGenerator:
    """
    Generates flashcards from study notes with an OpenAI-compatible client.

    A client may be injected (tests, alternative providers); otherwise one is
    built from the configured API key and base URL on first use.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[OpenAI] = None,
    ):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.settings.openai_api_key:
                raise GenerationError(
                    "OpenAI API key is not configured "
                    "(set STUDYCARDS_OPENAI_API_KEY)."
                )
            self._client = OpenAI(
                api_key=self.settings.openai_api_key,
                base_url=self.settings.openai_base_url,
            )
        return self._client

    def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        try:
            completion = self.client.chat.completions.create(
                model=self.settings.openai_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"Text generation request failed: {e}")
            raise GenerationError(
                f"Failed to generate flashcards: {e}", original_exception=e
            ) from e

        content = None
        if completion.choices:
            content = completion.choices[0].message.content
        if not content:
            raise GenerationError("No content received from the model")
        return content

    def generate_flashcards(
        self,
        text: str,
        count: Optional[int] = None,
        difficulty: str = "mixed",
        categories: Sequence[str] = (),
    ) -> List[FlashcardDraft]:
        """
        Generate flashcards from `text`.

        Args:
            text: Study notes to generate from.
            count: Number of cards to request (defaults to configuration).
            difficulty: easy, medium, hard, or mixed for no focus.
            categories: Optional categories to focus on.

        Returns:
            Validated drafts in the order the model returned them.

        Raises:
            GenerationError: On invalid arguments, API failure or an
                unusable response.
        """
        if not text or not text.strip():
            raise GenerationError("Cannot generate flashcards from empty text")
        if difficulty not in DIFFICULTY_CHOICES:
            raise GenerationError(
                f"Invalid difficulty '{difficulty}'. "
                f"Allowed: {', '.join(DIFFICULTY_CHOICES)}."
            )
        count = count or self.settings.default_card_count

        logger.info(
            f"Generating {count} flashcards "
            f"(difficulty={difficulty}, categories={len(categories)})"
        )
        content = self._complete(
            GENERATION_SYSTEM_PROMPT,
            build_generation_prompt(text, count, difficulty, categories),
            temperature=self.settings.generation_temperature,
            max_tokens=self.settings.generation_max_tokens,
        )
        logger.info("Generation response received")

        drafts = parse_flashcards_response(content)
        logger.info(f"Parsed {len(drafts)} flashcards from response")
        return drafts

    def improve_flashcard(self, draft: FlashcardDraft) -> FlashcardDraft:
        """
        Ask the model for a clearer version of `draft`.

        The category and difficulty of the original are kept regardless of
        what the model returns.
        """
        content = self._complete(
            IMPROVEMENT_SYSTEM_PROMPT,
            build_improvement_prompt(draft),
            temperature=self.settings.improvement_temperature,
            max_tokens=self.settings.improvement_max_tokens,
        )
        improved = parse_improved_flashcard(content)
        return improved.model_copy(
            update={
                "category": draft.category,
                "difficulty": draft.difficulty,
            }
        )
