"""
StyleJson contract.

One schema validates style data wherever it enters: model output during
analysis and stored JSON read back from the database or cache.
"""

import json
from enum import Enum
from typing import Any, Literal, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ghostwriter.core.exceptions import StyleContractError
from ghostwriter.utils.formatters import extract_json_object

logger = structlog.get_logger(__name__)


class ConfidenceLevel(str, Enum):
    """How much source data backed a style profile."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


EmojiUsage = Literal["none", "minimal", "moderate", "heavy"]
ParagraphDensity = Literal["compact", "spaced", "varied"]


class StyleJson(BaseModel):
    """Fixed-shape description of how a user writes. No facts, only voice."""

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    tone: str
    formality_level: int = Field(ge=1, le=10)
    average_length_words: float = Field(ge=0)
    emoji_usage: EmojiUsage
    structure_patterns: list[str]
    hook_patterns: list[str]
    hashtag_style: str
    favorite_topics: list[str]
    common_phrases_or_cadence_examples: list[str]
    paragraph_density: ParagraphDensity


def parse_style_json(raw: Union[str, dict[str, Any]]) -> StyleJson:
    """
    Validate model output against the StyleJson contract.

    Raises:
        StyleContractError: on unparseable JSON or any field mismatch
    """
    try:
        data = extract_json_object(raw) if isinstance(raw, str) else raw
    except ValueError as e:
        raise StyleContractError(f"Style output is not a JSON object: {e}") from e

    try:
        return StyleJson.model_validate(data)
    except ValidationError as e:
        raise StyleContractError(f"Invalid style JSON structure: {e}") from e


def load_stored_style(value: Any) -> Optional[StyleJson]:
    """Deserialize a stored style profile, treating anything off-contract as absent."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Stored style profile is not valid JSON")
            return None
    try:
        return StyleJson.model_validate(value)
    except ValidationError as e:
        logger.warning("Stored style profile failed validation", errors=e.error_count())
        return None
