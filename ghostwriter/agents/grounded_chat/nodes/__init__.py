"""
Graph Nodes for the Grounded Chat Graph.

Each node is a callable that takes the state and returns updated state.
"""

from ghostwriter.agents.grounded_chat.nodes.intent import IntentClassifierNode, enforce_intent_rules
from ghostwriter.agents.grounded_chat.nodes.retrieval import RetrievalNode
from ghostwriter.agents.grounded_chat.nodes.grounding import GroundingLoaderNode
from ghostwriter.agents.grounded_chat.nodes.generation import GenerationNode
from ghostwriter.agents.grounded_chat.nodes.validation import FactValidationNode

__all__ = [
    "IntentClassifierNode",
    "enforce_intent_rules",
    "RetrievalNode",
    "GroundingLoaderNode",
    "GenerationNode",
    "FactValidationNode",
]
