"""
Grounded Chat Graph.

The LangGraph that runs one chat turn and the orchestrator that wraps it.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Sequence

import structlog
from langgraph.graph import END, StateGraph

from ghostwriter.agents.grounded_chat.nodes import (
    FactValidationNode,
    GenerationNode,
    GroundingLoaderNode,
    IntentClassifierNode,
    RetrievalNode,
)
from ghostwriter.agents.grounded_chat.state import GroundedChatState, create_initial_state
from ghostwriter.core.config import Settings
from ghostwriter.core.llm_clients import LLMClient
from ghostwriter.core.observability import capture_exception
from ghostwriter.schemas.intent import Intent
from ghostwriter.schemas.records import ChatMessageRecord, MemoryEntry
from ghostwriter.schemas.style import StyleJson
from ghostwriter.services.fact_validator import FactValidator
from ghostwriter.services.linkedin_repository import LinkedInRepository
from ghostwriter.services.rag_retriever import RAGRetriever

logger = structlog.get_logger(__name__)

APOLOGY_MESSAGE = (
    "I'm sorry, something went wrong while preparing a response. Please try again in a moment."
)


@dataclass
class OrchestratorResult:
    """One assistant message plus the turn's intent and metadata."""
    response_text: str
    intent: Optional[Intent]
    metadata: dict[str, Any] = field(default_factory=dict)


def create_grounded_chat_graph(
    classifier: IntentClassifierNode,
    retriever: RetrievalNode,
    grounding: GroundingLoaderNode,
    generator: GenerationNode,
    validator: FactValidationNode,
):
    """
    Create the grounded chat graph.

    Graph Structure:
    ```
    Entry -> intent_classifier
        |
        ├─[WRITE_POST needs clarification]─> generator -> END
        |
        └─> retriever -> grounding_loader -> generator
                                                |
                                                ├─[sensitive]─> fact_validator -> END
                                                └─> END
    ```

    Returns:
        Compiled StateGraph
    """
    workflow = StateGraph(GroundedChatState)

    # ==================== Add Nodes ====================
    workflow.add_node("intent_classifier", classifier)
    workflow.add_node("retriever", retriever)
    workflow.add_node("grounding_loader", grounding)
    workflow.add_node("generator", generator)
    workflow.add_node("fact_validator", validator)

    # ==================== Set Entry Point ====================
    workflow.set_entry_point("intent_classifier")

    # ==================== Clarification Routing ====================
    def classification_router(state: GroundedChatState) -> Literal["retriever", "generator"]:
        """A clarifying question needs no grounding."""
        classification = state["classification"]
        if classification.intent == Intent.WRITE_POST and classification.needs_clarification:
            return "generator"
        return "retriever"

    workflow.add_conditional_edges(
        "intent_classifier",
        classification_router,
        {
            "retriever": "retriever",
            "generator": "generator",
        },
    )

    # ==================== Main Flow Edges ====================
    workflow.add_edge("retriever", "grounding_loader")
    workflow.add_edge("grounding_loader", "generator")

    # ==================== Validation Routing ====================
    def validation_router(state: GroundedChatState) -> Literal["fact_validator", "end"]:
        if state.get("needs_validation", False):
            return "fact_validator"
        return "end"

    workflow.add_conditional_edges(
        "generator",
        validation_router,
        {
            "fact_validator": "fact_validator",
            "end": END,
        },
    )

    workflow.add_edge("fact_validator", END)

    return workflow.compile()


class GroundedChatOrchestrator:
    """
    Runs grounded-generation turns.

    `respond` always returns a message. A turn that fails or exceeds the
    turn timeout returns an apology with no intent.
    """

    def __init__(
        self,
        settings: Settings,
        llm: LLMClient,
        retriever: RAGRetriever,
        repository: LinkedInRepository,
        validator: FactValidator,
    ):
        self.settings = settings
        self.graph = create_grounded_chat_graph(
            IntentClassifierNode(llm, settings),
            RetrievalNode(retriever, settings),
            GroundingLoaderNode(repository, settings),
            GenerationNode(llm, settings),
            FactValidationNode(validator),
        )

    async def respond(
        self,
        user_id: str,
        user_message: str,
        chat_history: Optional[Sequence[ChatMessageRecord]] = None,
        style_profile: Optional[StyleJson] = None,
        memory: Optional[Sequence[MemoryEntry]] = None,
    ) -> OrchestratorResult:
        """
        Run one turn.

        Args:
            user_id: Owner of every piece of grounding data used
            user_message: The new message
            chat_history: Prior messages, oldest first, excluding `user_message`
            style_profile: Validated style profile or None
            memory: Long-term memory entries

        Returns:
            OrchestratorResult with the assistant text, intent and metadata
        """
        initial_state = create_initial_state(user_id, user_message, chat_history, style_profile, memory)

        try:
            result: GroundedChatState = await asyncio.wait_for(
                self.graph.ainvoke(initial_state),
                timeout=self.settings.turn_timeout_seconds,
            )
        except Exception as e:
            error_type = "timeout" if isinstance(e, asyncio.TimeoutError) else type(e).__name__
            logger.error("Chat turn failed", user_id=user_id, error=str(e), error_type=error_type)
            capture_exception(e, {"user_id": user_id, "stage": "grounded_chat_turn"})
            return OrchestratorResult(
                response_text=APOLOGY_MESSAGE,
                intent=None,
                metadata={"error": error_type},
            )

        classification = result["classification"]
        metadata = {
            "needs_clarification": classification.needs_clarification,
            "requires_rag": classification.requires_rag,
            "rag_posts_count": len(result.get("rag_posts") or []),
            "retrieval_failed": result.get("retrieval_failed", False),
            "validated": result.get("validated", False),
            "rewritten": result.get("rewritten", False),
            "unsupported_claims_count": len(result.get("unsupported_claims") or []),
        }

        logger.info("Chat turn completed", user_id=user_id, intent=classification.intent.value, **metadata)
        return OrchestratorResult(
            response_text=result.get("response_text") or APOLOGY_MESSAGE,
            intent=classification.intent,
            metadata=metadata,
        )
