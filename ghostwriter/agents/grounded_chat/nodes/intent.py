"""
Intent Classifier Node.

Classifies the user message into one of the four closed-set intents and
applies the routing rules that must hold whatever model does the
classification.
"""

import time
from typing import Any

import structlog
from pydantic import ValidationError

from ghostwriter.agents.grounded_chat.state import GroundedChatState, add_execution_trace
from ghostwriter.core.config import Settings
from ghostwriter.core.exceptions import IntentClassificationError
from ghostwriter.core.llm_clients import LLMClient
from ghostwriter.schemas.intent import Intent, IntentClassification
from ghostwriter.services.fact_validator import is_sensitive
from ghostwriter.utils.formatters import extract_json_object
from ghostwriter.utils.prompts import PromptContractBuilder

logger = structlog.get_logger(__name__)


CLASSIFIER_SYSTEM_PROMPT = (
    "You are an intent classifier. Return only valid JSON matching the exact structure specified."
)

CLASSIFIER_STYLE_BLOCK = "STYLE BLOCK:\nNot applicable - this is intent classification."

INTENT_CLASSIFICATION_PROMPT = """Classify the user's message into one of these intents: "WRITE_POST", "ANALYZE_PROFILE", "STRATEGY", or "OTHER".
Use the RECENT CONVERSATION above for context.

User message: {user_message}

Return a JSON object with this exact structure:
{{
  "intent": "WRITE_POST" | "ANALYZE_PROFILE" | "STRATEGY" | "OTHER",
  "needs_clarification": boolean,
  "missing_fields": string[],
  "requires_rag": boolean,
  "proposed_follow_ups": string[]
}}

For WRITE_POST intent:
- Set requires_rag to true if the message mentions career, experience, achievements, or personal journey
- Set needs_clarification to true if topic, angle, or key points are missing
- missing_fields should list what's needed (e.g., ["topic", "target_audience"])
- proposed_follow_ups should be 1-3 clarifying questions

For ANALYZE_PROFILE or STRATEGY:
- Set requires_rag to true
- needs_clarification should typically be false

For OTHER, decide requires_rag and needs_clarification from context.

Return ONLY valid JSON, no additional text."""


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _as_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def parse_classification(content: str) -> IntentClassification:
    """
    Parse classifier output.

    Raises:
        IntentClassificationError: on non-JSON output or an intent outside
            the closed set
    """
    try:
        parsed = extract_json_object(content)
    except ValueError as e:
        raise IntentClassificationError(f"Failed to parse intent classification: {e}") from e

    raw_intent = parsed.get("intent")
    try:
        intent = Intent(raw_intent)
    except ValueError as e:
        raise IntentClassificationError(f"Invalid intent: {raw_intent}") from e

    try:
        return IntentClassification(
            intent=intent,
            needs_clarification=_as_bool(parsed.get("needs_clarification", False)),
            missing_fields=_as_str_list(parsed.get("missing_fields")),
            requires_rag=_as_bool(parsed.get("requires_rag", False)),
            proposed_follow_ups=_as_str_list(parsed.get("proposed_follow_ups")),
        )
    except ValidationError as e:
        raise IntentClassificationError(f"Failed to parse intent classification: {e}") from e


def enforce_intent_rules(
    classification: IntentClassification,
    user_message: str,
    max_follow_ups: int = 3,
) -> IntentClassification:
    """
    Apply the intent rules on top of whatever the model returned.

    - ANALYZE_PROFILE and STRATEGY always require retrieval
    - WRITE_POST requires retrieval when the message is about career,
      experience, achievements or personal journey
    - WRITE_POST with missing fields needs clarification, with at least
      one follow-up question
    - at most `max_follow_ups` follow-ups
    """
    requires_rag = classification.requires_rag
    needs_clarification = classification.needs_clarification
    follow_ups = list(classification.proposed_follow_ups)

    if classification.intent in (Intent.ANALYZE_PROFILE, Intent.STRATEGY):
        requires_rag = True

    if classification.intent == Intent.WRITE_POST:
        if is_sensitive(user_message):
            requires_rag = True
        if classification.missing_fields:
            needs_clarification = True
        if needs_clarification and not follow_ups:
            if classification.missing_fields:
                follow_ups = [
                    f"Could you share the {field.replace('_', ' ')} for this post?"
                    for field in classification.missing_fields
                ]
            else:
                follow_ups = ["What topic and angle would you like the post to take?"]

    return classification.model_copy(update={
        "requires_rag": requires_rag,
        "needs_clarification": needs_clarification,
        "proposed_follow_ups": follow_ups[:max_follow_ups],
    })


class IntentClassifierNode:
    """
    Classifies user intent for routing decisions.

    Classification failures are fatal to the turn; there is no fallback
    intent.
    """

    def __init__(self, llm: LLMClient, settings: Settings):
        self.llm = llm
        self.settings = settings

    async def __call__(self, state: GroundedChatState) -> GroundedChatState:
        start_time = time.time()
        state["current_node"] = "intent_classifier"

        prompt = PromptContractBuilder.build_prompt_from_blocks(
            CLASSIFIER_STYLE_BLOCK,
            PromptContractBuilder.build_facts_block(),
            INTENT_CLASSIFICATION_PROMPT.format(user_message=state["user_message"]),
            PromptContractBuilder.build_conversation_context(
                state.get("chat_history"), self.settings.classifier_history_window
            ),
        )

        content = await self.llm.complete(
            prompt,
            system_prompt=CLASSIFIER_SYSTEM_PROMPT,
            temperature=self.settings.classifier_temperature,
            json_mode=True,
        )
        if not content or not content.strip():
            raise IntentClassificationError("No content in intent classification response")

        classification = enforce_intent_rules(
            parse_classification(content),
            state["user_message"],
            self.settings.max_follow_ups,
        )
        state["classification"] = classification

        execution_time = int((time.time() - start_time) * 1000)
        add_execution_trace(state, "intent_classifier", "completed", execution_time)

        logger.info(
            "Intent classified",
            intent=classification.intent.value,
            needs_clarification=classification.needs_clarification,
            requires_rag=classification.requires_rag,
        )
        return state
