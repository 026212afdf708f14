"""
Conversation orchestration module.

This module provides the SessionRegistrar, which keeps conversations and the
per-owner session index consistent, and the ConversationOrchestrator, which
drives a single user submission from input to commit.
"""

from .orchestrator import ConversationOrchestrator
from .registrar import SessionRegistrar
from .session_manager import derive_title, requests_lazy_creation
from .types import ContentOptions, ContentResult, SubmissionState, SubmissionView

__all__ = [
    "ConversationOrchestrator",
    "SessionRegistrar",
    "ContentOptions",
    "ContentResult",
    "SubmissionState",
    "SubmissionView",
    "derive_title",
    "requests_lazy_creation",
]
