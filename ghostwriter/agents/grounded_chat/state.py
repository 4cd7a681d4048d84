"""
Grounded Chat State Schema.

The TypedDict that flows through every node of one chat turn. Nothing
here is persisted; a turn starts from `create_initial_state`.
"""

from datetime import datetime, timezone
from typing import Optional, Sequence, TypedDict

from ghostwriter.schemas.intent import IntentClassification
from ghostwriter.schemas.records import ChatMessageRecord, MemoryEntry, PostRecord, ProfileRecord
from ghostwriter.schemas.style import StyleJson


class GroundedChatState(TypedDict, total=False):
    """State for one grounded-generation turn."""

    # ==================== Inputs ====================
    user_id: str
    user_message: str
    chat_history: list[ChatMessageRecord]
    style_profile: Optional[StyleJson]
    memory: list[MemoryEntry]

    # ==================== Classification ====================
    classification: Optional[IntentClassification]

    # ==================== Grounding ====================
    rag_posts: list[PostRecord]
    retrieval_failed: bool
    profile: Optional[ProfileRecord]

    # ==================== Generation ====================
    style_block: str
    facts_block: str
    draft: str
    needs_validation: bool

    # ==================== Validation ====================
    validated: bool
    rewritten: bool
    unsupported_claims: list[str]

    # ==================== Response ====================
    response_text: Optional[str]

    # ==================== Execution Metadata ====================
    current_node: str
    execution_trace: list[dict]
    errors: list[str]


def create_initial_state(
    user_id: str,
    user_message: str,
    chat_history: Optional[Sequence[ChatMessageRecord]] = None,
    style_profile: Optional[StyleJson] = None,
    memory: Optional[Sequence[MemoryEntry]] = None,
) -> GroundedChatState:
    return GroundedChatState(
        user_id=user_id,
        user_message=user_message,
        chat_history=list(chat_history or []),
        style_profile=style_profile,
        memory=list(memory or []),
        classification=None,
        rag_posts=[],
        retrieval_failed=False,
        profile=None,
        style_block="",
        facts_block="",
        draft="",
        needs_validation=False,
        validated=False,
        rewritten=False,
        unsupported_claims=[],
        response_text=None,
        current_node="start",
        execution_trace=[],
        errors=[],
    )


def add_execution_trace(
    state: GroundedChatState,
    node: str,
    status: str,
    time_ms: int = 0,
    error: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> None:
    """
    Add an execution trace entry to the state.

    Args:
        state: Current turn state
        node: Node name
        status: Execution status (completed, skipped, failed)
        time_ms: Execution time in milliseconds
        error: Error message if failed
        metadata: Additional metadata
    """
    trace_entry = {
        "node": node,
        "status": status,
        "time_ms": time_ms,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if error:
        trace_entry["error"] = error

    if metadata:
        trace_entry["metadata"] = metadata

    state["execution_trace"].append(trace_entry)
