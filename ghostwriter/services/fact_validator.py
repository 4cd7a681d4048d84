"""
Fact Validator.

Second-pass hallucination check for sensitive generations:

1. Ask the model which claims in the draft are not supported by the FACTS
   block that produced it
2. If any are found, rewrite the draft once without them
3. Return the rewrite without re-validating it

Parse and upstream failures count as "validation failed" and take the same
rewrite path. Nothing here raises to the caller.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

import structlog

from ghostwriter.core.config import Settings
from ghostwriter.core.llm_clients import LLMClient
from ghostwriter.schemas.records import ValidationResult
from ghostwriter.utils.formatters import extract_json_object
from ghostwriter.utils.prompts import PromptContractBuilder

logger = structlog.get_logger(__name__)


UNABLE_TO_VALIDATE = "Unable to validate"
VALIDATION_FAILED = "Validation failed"
GENERIC_MARKERS = frozenset({UNABLE_TO_VALIDATE, VALIDATION_FAILED})

# Shorter claims ("I", "we") would match nearly every sentence
MIN_CLAIM_LENGTH = 4

NOTHING_VERIFIABLE = (
    "I couldn't verify the details in this draft against your profile. "
    "Could you share the specific facts you'd like the post to include?"
)

SENSITIVE_PATTERN = re.compile(
    r"\b(?:career\w*|experien\w*|achiev\w*|accomplish\w*|bio|biograph\w*|journey\w*"
    r"|background|milestone\w*|promot\w*|award\w*|founded|worked|resume|role|roles"
    r"|job|jobs|\d+\+?\s+years?)\b",
    re.IGNORECASE,
)

SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")

VALIDATOR_SYSTEM_PROMPT = (
    "You are a fact-checker. Identify any claims in the text that are not supported by the "
    "provided FACTS. Be strict - if a claim cannot be verified from FACTS, it is unsupported."
)

VALIDATOR_STYLE_BLOCK = "STYLE BLOCK:\nNot applicable for fact validation."

VALIDATOR_INSTRUCTIONS = """Analyze the generated text above. List every claim, statement, or assertion that is NOT supported by the FACTS block.

For each unsupported claim, quote the exact text from the generated content. Do not add explanations.

If all claims are supported by FACTS, set allSupported to true and unsupportedClaims to an empty array.

Return your response as a JSON object with this structure:
{
  "unsupportedClaims": ["claim 1", "claim 2"],
  "allSupported": boolean
}

CRITICAL: Be strict - if a claim is inferred, assumed, or not explicitly stated in FACTS, it is unsupported."""

REWRITE_SYSTEM_PROMPT = (
    "You are a LinkedIn content editor. Remove or rewrite unsupported claims while keeping "
    "the user's voice. Never add new facts."
)

REWRITE_INSTRUCTIONS = """Rewrite the draft below so that it contains none of the unsupported claims.

DRAFT:
{draft}

UNSUPPORTED CLAIMS:
{claims}

Rules:
- Remove each unsupported claim, or replace it with a generic statement that makes no factual assertion about the user.
- Keep the structure of the draft (Hook, Body, CTA) and the voice described in the STYLE block.
- Do not introduce any new facts.

Return only the rewritten post."""


def is_sensitive(*texts: Optional[str]) -> bool:
    """True when any text touches career, experience, achievements, bio or journey."""
    return any(text and SENSITIVE_PATTERN.search(text) for text in texts)


def _claim_needle(claim: str) -> str:
    return claim.strip().strip("\"'“”‘’").strip().rstrip(".")


def _claim_pattern(needle: str) -> re.Pattern:
    """Case-insensitive match of the claim as whole words."""
    start = r"\b" if needle[0].isalnum() else ""
    end = r"\b" if needle[-1].isalnum() else ""
    return re.compile(start + re.escape(needle) + end, re.IGNORECASE)


def strip_unsupported_claims(text: str, claims: Sequence[str]) -> str:
    """
    Remove every sentence that contains an unsupported claim as whole words.

    Claims that span sentences are cut out as substrings. Generic markers
    name no text and claims shorter than MIN_CLAIM_LENGTH are ignored. Line
    structure is preserved.
    """
    needles = {
        _claim_needle(claim)
        for claim in claims
        if claim and claim not in GENERIC_MARKERS
    }
    patterns = [_claim_pattern(needle) for needle in sorted(needles) if len(needle) >= MIN_CLAIM_LENGTH]
    if not patterns:
        return text

    kept_lines = []
    for line in text.split("\n"):
        sentences = SENTENCE_SPLIT.split(line)
        kept = [s for s in sentences if not any(pattern.search(s) for pattern in patterns)]
        if line.strip() and not kept:
            continue
        kept_lines.append(" ".join(kept))

    result = "\n".join(kept_lines)
    for pattern in patterns:
        result = pattern.sub("", result)

    result = re.sub(r"[ \t]{2,}", " ", result)
    result = re.sub(r"\n{3,}", "\n\n", result)
    return result.strip()


@dataclass
class ValidationOutcome:
    """Final text of a validated generation."""
    text: str
    validated: bool = True
    rewritten: bool = False
    unsupported_claims: list[str] = field(default_factory=list)


class FactValidator:
    """Two-pass grounding check with a single bounded rewrite."""

    def __init__(self, llm: LLMClient, settings: Settings):
        self.llm = llm
        self.settings = settings

    async def validate(self, generated_text: str, facts_block: str) -> ValidationResult:
        """List the claims in `generated_text` that `facts_block` does not support."""
        prompt = PromptContractBuilder.build_prompt_from_blocks(
            VALIDATOR_STYLE_BLOCK,
            f"{facts_block}\n\nGENERATED TEXT TO VALIDATE:\n{generated_text}",
            VALIDATOR_INSTRUCTIONS,
        )

        try:
            content = await self.llm.complete(
                prompt,
                system_prompt=VALIDATOR_SYSTEM_PROMPT,
                temperature=self.settings.validator_temperature,
                json_mode=True,
            )
        except Exception as e:
            logger.warning("Fact validation call failed", error=str(e))
            return ValidationResult(is_valid=False, unsupported_claims=[VALIDATION_FAILED])

        if not content or not content.strip():
            return ValidationResult(is_valid=False, unsupported_claims=[UNABLE_TO_VALIDATE])

        try:
            parsed = extract_json_object(content)
        except ValueError:
            logger.warning("Fact validation response was not JSON")
            return ValidationResult(is_valid=False, unsupported_claims=[VALIDATION_FAILED])

        raw_claims = parsed.get("unsupportedClaims") or []
        if not isinstance(raw_claims, list):
            return ValidationResult(is_valid=False, unsupported_claims=[VALIDATION_FAILED])
        claims = [str(claim) for claim in raw_claims if str(claim).strip()]

        all_supported = parsed.get("allSupported")
        if not isinstance(all_supported, bool):
            all_supported = not claims

        if all_supported and not claims:
            return ValidationResult(is_valid=True, unsupported_claims=[])
        return ValidationResult(is_valid=False, unsupported_claims=claims or [VALIDATION_FAILED])

    async def rewrite(
        self,
        generated_text: str,
        facts_block: str,
        style_block: str,
        unsupported_claims: Sequence[str],
    ) -> str:
        """
        One rewrite pass without the flagged claims.

        The model output is followed by a deterministic strip of any claim
        still present verbatim. If the model call fails or returns nothing,
        the deterministic strip is applied to the original draft.
        """
        claims_text = "\n".join(f"- {claim}" for claim in unsupported_claims)
        prompt = PromptContractBuilder.build_prompt_from_blocks(
            style_block,
            facts_block,
            REWRITE_INSTRUCTIONS.format(draft=generated_text, claims=claims_text),
        )

        try:
            rewritten = await self.llm.complete(
                prompt,
                system_prompt=REWRITE_SYSTEM_PROMPT,
                temperature=self.settings.write_post_temperature,
            )
        except Exception as e:
            logger.warning("Rewrite call failed, stripping claims", error=str(e))
            rewritten = ""

        base = rewritten.strip() if rewritten and rewritten.strip() else generated_text
        cleaned = strip_unsupported_claims(base, unsupported_claims)
        return cleaned or NOTHING_VERIFIABLE

    async def validate_and_rewrite(
        self,
        generated_text: str,
        facts_block: str,
        style_block: str,
    ) -> ValidationOutcome:
        result = await self.validate(generated_text, facts_block)
        if result.is_valid:
            return ValidationOutcome(text=generated_text)

        logger.info("Unsupported claims found", claims=len(result.unsupported_claims))
        rewritten = await self.rewrite(generated_text, facts_block, style_block, result.unsupported_claims)
        return ValidationOutcome(
            text=rewritten,
            rewritten=True,
            unsupported_claims=list(result.unsupported_claims),
        )
