"""
Style extraction: one model call that turns candidate posts into a StyleJson.
"""

from typing import Optional, Sequence

import structlog

from ghostwriter.core.config import Settings
from ghostwriter.core.exceptions import AnalysisError
from ghostwriter.core.llm_clients import LLMClient
from ghostwriter.schemas.records import PostRecord
from ghostwriter.schemas.style import ConfidenceLevel, StyleJson, parse_style_json
from ghostwriter.services.analysis.engagement import compute_confidence, usable_texts
from ghostwriter.utils.prompts import PromptContractBuilder

logger = structlog.get_logger(__name__)


STYLE_SYSTEM_PROMPT = (
    "You are an expert at analyzing writing styles. "
    "Extract style patterns and return valid JSON only."
)

STYLE_NOT_APPLICABLE_BLOCK = (
    "STYLE BLOCK:\nNot applicable - this is style extraction, not style application."
)

STYLE_EXTRACTION_INSTRUCTIONS = """Analyze the writing style from the FACTS provided (LinkedIn posts and profile about section).

Extract and return a JSON object with the following exact structure:
{
  "tone": "string describing the overall tone (e.g., 'professional', 'conversational', 'inspirational')",
  "formality_level": integer from 1-10 where 1 is very casual and 10 is very formal,
  "average_length_words": number representing average word count per post,
  "emoji_usage": one of "none", "minimal", "moderate", or "heavy",
  "structure_patterns": array of strings describing common structural patterns (e.g., ["question hook", "story opening", "numbered list"]),
  "hook_patterns": array of strings describing how posts typically start (e.g., ["personal anecdote", "statistic", "question"]),
  "hashtag_style": string describing hashtag usage (e.g., "3-5 hashtags at end", "no hashtags", "hashtags integrated"),
  "favorite_topics": array of strings listing common topics/themes,
  "common_phrases_or_cadence_examples": array of strings with 2-3 example phrases that capture the writing cadence,
  "paragraph_density": one of "compact", "spaced", or "varied"
}

Only extract style patterns that are clearly present in the FACTS. Do not invent style characteristics.
If data is insufficient, use conservative defaults (e.g., "professional" tone, formality_level 5).
Do not add or remove fields.

Return ONLY valid JSON, no additional text."""


class StyleExtractor:
    """Derives a StyleJson and confidence tier from candidate posts."""

    def __init__(self, llm: LLMClient, settings: Settings):
        self.llm = llm
        self.settings = settings

    async def extract(
        self,
        candidates: Sequence[PostRecord],
        about: Optional[str],
    ) -> tuple[StyleJson, ConfidenceLevel]:
        """
        Run style extraction over candidate posts.

        Raises:
            AnalysisError: if no candidate has usable text
            StyleContractError: if the model output is off-contract
        """
        texts = usable_texts(candidates)[: self.settings.style_candidate_limit]
        if not texts:
            raise AnalysisError("No post text available for style analysis")

        confidence = compute_confidence(texts, about)

        prompt = PromptContractBuilder.build_prompt_from_blocks(
            STYLE_NOT_APPLICABLE_BLOCK,
            PromptContractBuilder.build_style_source_facts_block(texts, about),
            STYLE_EXTRACTION_INSTRUCTIONS,
        )

        content = await self.llm.complete(
            prompt,
            system_prompt=STYLE_SYSTEM_PROMPT,
            temperature=self.settings.style_temperature,
            json_mode=True,
        )
        style = parse_style_json(content)

        logger.info(
            "Style profile extracted",
            posts_used=len(texts),
            confidence=confidence.value,
            tone=style.tone,
        )
        return style, confidence
