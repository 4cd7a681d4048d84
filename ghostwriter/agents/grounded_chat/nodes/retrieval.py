"""
Retrieval Node.

Pulls the user's most relevant posts when the classification asks for
retrieval. A failing retriever never aborts the turn: the turn continues
with no posts and the FACTS block falls back to the no-data framing.
"""

import time

import structlog

from ghostwriter.agents.grounded_chat.state import GroundedChatState, add_execution_trace
from ghostwriter.core.config import Settings
from ghostwriter.schemas.intent import Intent
from ghostwriter.services.rag_retriever import RAGRetriever

logger = structlog.get_logger(__name__)


class RetrievalNode:

    def __init__(self, retriever: RAGRetriever, settings: Settings):
        self.retriever = retriever
        self.settings = settings

    async def __call__(self, state: GroundedChatState) -> GroundedChatState:
        start_time = time.time()
        state["current_node"] = "retriever"

        classification = state["classification"]
        if not classification.requires_rag or classification.intent == Intent.OTHER:
            add_execution_trace(state, "retriever", "skipped")
            return state

        try:
            state["rag_posts"] = await self.retriever.retrieve_relevant_posts(
                state["user_id"],
                state["user_message"],
                self.settings.rag_top_k,
            )
        except Exception as e:
            logger.error("Retrieval failed, continuing without posts", user_id=state["user_id"], error=str(e))
            state["rag_posts"] = []
            state["retrieval_failed"] = True
            state["errors"].append(f"Retrieval error: {str(e)}")
            add_execution_trace(state, "retriever", "failed", int((time.time() - start_time) * 1000), str(e))
            return state

        add_execution_trace(
            state,
            "retriever",
            "completed",
            int((time.time() - start_time) * 1000),
            metadata={"posts": len(state["rag_posts"])},
        )
        return state
