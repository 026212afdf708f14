"""
Type definitions for submission orchestration.

This module defines the state machine states, content source toggles and the
UI-facing view of a submission used by the ConversationOrchestrator.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from ..core.models import Conversation, VideoReference

logger = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    """Lifecycle of one submission."""

    IDLE = "idle"
    COMPOSING = "composing"
    AWAITING_CONTENT = "awaiting_content"
    COMMITTING = "committing"


@dataclass
class ContentOptions:
    """
    Which content sources a submission fans out to.

    At least one source stays enabled; a flip that would disable both is
    refused.
    """

    text: bool = True
    """Stream a generated answer"""

    video: bool = False
    """Look up a related video"""

    def toggle(self, option: str) -> bool:
        """
        Flip one option.

        Returns:
            True if the option changed, False if the flip was refused
        """
        if option not in ("text", "video"):
            raise ValueError(f"Unknown content option: {option}")

        flipped = not getattr(self, option)
        other = self.video if option == "text" else self.text
        if not flipped and not other:
            logger.debug(f"Refusing to disable {option}: no other source enabled")
            return False

        setattr(self, option, flipped)
        return True


@dataclass
class SubmissionView:
    """
    Transient state shown to the user while a submission is processed.

    A failed submission keeps draft text and partial answer so the user can
    retry without retyping.
    """

    draft_text: str = ""
    """Text of the submission in progress"""

    partial_answer: str = ""
    """Streamed answer so far"""

    answer_complete: bool = False
    """Whether the text stream finished"""

    video_draft: VideoReference | None = None
    """Video found for the submission in progress"""

    image: str | None = None
    """Image attached to the submission in progress"""

    error: str | None = None
    """Error of the last failed submission"""

    conversation: Conversation | None = None
    """Conversation as returned by the last successful commit"""

    def clear_transient(self) -> None:
        self.draft_text = ""
        self.partial_answer = ""
        self.answer_complete = False
        self.video_draft = None
        self.image = None


@dataclass
class ContentResult:
    """Merged outcome of all enabled content sources."""

    model_text: str = ""
    video: VideoReference | None = None
    failures: list[str] = field(default_factory=list)
