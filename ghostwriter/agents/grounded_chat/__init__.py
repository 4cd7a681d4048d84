"""
Grounded chat: classify, retrieve, ground, generate and validate one turn.
"""

from ghostwriter.agents.grounded_chat.graph import (
    APOLOGY_MESSAGE,
    GroundedChatOrchestrator,
    OrchestratorResult,
    create_grounded_chat_graph,
)

__all__ = [
    "APOLOGY_MESSAGE",
    "GroundedChatOrchestrator",
    "OrchestratorResult",
    "create_grounded_chat_graph",
]
