"""
Fact Validation Node.

Runs the two-pass grounding check on a sensitive draft. The rewrite is
returned as is; it is never validated again.
"""

import time

import structlog

from ghostwriter.agents.grounded_chat.state import GroundedChatState, add_execution_trace
from ghostwriter.services.fact_validator import FactValidator

logger = structlog.get_logger(__name__)


class FactValidationNode:

    def __init__(self, validator: FactValidator):
        self.validator = validator

    async def __call__(self, state: GroundedChatState) -> GroundedChatState:
        start_time = time.time()
        state["current_node"] = "fact_validator"

        outcome = await self.validator.validate_and_rewrite(
            state["draft"],
            state["facts_block"],
            state["style_block"],
        )

        state["response_text"] = outcome.text
        state["validated"] = outcome.validated
        state["rewritten"] = outcome.rewritten
        state["unsupported_claims"] = outcome.unsupported_claims

        add_execution_trace(
            state,
            "fact_validator",
            "completed",
            int((time.time() - start_time) * 1000),
            metadata={"rewritten": outcome.rewritten, "unsupported_claims": len(outcome.unsupported_claims)},
        )
        logger.info(
            "Draft validated",
            user_id=state["user_id"],
            rewritten=outcome.rewritten,
            unsupported_claims=len(outcome.unsupported_claims),
        )
        return state
