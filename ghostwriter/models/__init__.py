"""Database models"""

from ghostwriter.models.chat import Chat, ChatMessage, MessageRole
from ghostwriter.models.linkedin import LinkedInPost, LinkedInProfile, PostEmbedding
from ghostwriter.models.memory import LongTermMemory, SummaryType
from ghostwriter.models.style_profile import StyleProfile
from ghostwriter.models.user import (
    ALLOWED_TRANSITIONS,
    OnboardingStatus,
    User,
    UserProfile,
    can_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Chat",
    "ChatMessage",
    "LinkedInPost",
    "LinkedInProfile",
    "LongTermMemory",
    "MessageRole",
    "OnboardingStatus",
    "PostEmbedding",
    "StyleProfile",
    "SummaryType",
    "User",
    "UserProfile",
    "can_transition",
]
