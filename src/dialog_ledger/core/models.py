"""
Core Pydantic models for Dialog Ledger.

These are the plain-data shapes handed to callers: conversations with their
ordered turn history and the per-owner index of conversation summaries. No
database handles are reachable from them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class TurnRole(str, Enum):
    """Author of a turn."""
    USER = "user"
    MODEL = "model"


class VideoReference(BaseModel):
    """Video attached to a model turn. All three fields are mandatory."""
    title: str = Field(..., description="Video title")
    url: str = Field(..., description="Watch URL")
    thumbnail: str = Field(..., description="Thumbnail image URL")

    @field_validator('title', 'url', 'thumbnail')
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Video fields cannot be empty")
        return v


class Turn(BaseModel):
    """One role-tagged entry in a conversation history."""
    role: TurnRole = Field(..., description="Turn author")
    text_parts: List[str] = Field(default_factory=list, description="Ordered text segments")
    image: Optional[str] = Field(None, description="Opaque image path or identifier")
    video: Optional[VideoReference] = Field(None, description="Attached video")

    @model_validator(mode='after')
    def validate_content(self):
        if self.role == TurnRole.USER and not self.text_parts:
            raise ValueError("User turns must carry text")
        if self.role == TurnRole.USER and self.video is not None:
            raise ValueError("Only model turns can carry a video")
        return self


class Conversation(BaseModel):
    """Append-only turn history owned by a single user."""
    id: str = Field(..., description="Conversation identifier")
    owner_id: str = Field(..., description="Owning user identifier")
    history: List[Turn] = Field(default_factory=list, description="Chronological turns")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConversationSummary(BaseModel):
    """Index record pointing at a conversation."""
    id: str = Field(..., description="Conversation identifier")
    title: str = Field(..., description="Title derived from the first user message")


class SessionIndexEntry(BaseModel):
    """All conversation summaries of one owner, in insertion order."""
    owner_id: str = Field(..., description="Owning user identifier")
    summaries: List[ConversationSummary] = Field(default_factory=list)

    def contains(self, conversation_id: str) -> bool:
        return any(summary.id == conversation_id for summary in self.summaries)
