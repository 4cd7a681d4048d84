"""
API route modules.
"""

from ghostwriter.api.routes.chats import router as chats_router
from ghostwriter.api.routes.onboarding import router as onboarding_router

__all__ = [
    "chats_router",
    "onboarding_router",
]
