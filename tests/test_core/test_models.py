"""
Tests for core Pydantic models.
"""

import pytest
from pydantic import ValidationError

from dialog_ledger.core.models import (
    Conversation,
    ConversationSummary,
    SessionIndexEntry,
    Turn,
    TurnRole,
    VideoReference,
)


class TestVideoReference:
    def test_valid_reference(self):
        video = VideoReference(
            title="Intro", url="https://example.com/v", thumbnail="https://example.com/t"
        )
        assert video.url == "https://example.com/v"

    def test_values_kept_as_given(self):
        video = VideoReference(
            title=" Intro ", url="https://example.com/v ", thumbnail="https://example.com/t"
        )
        assert video.title == " Intro "
        assert video.url == "https://example.com/v "

    @pytest.mark.parametrize("field", ["title", "url", "thumbnail"])
    def test_blank_field_rejected(self, field):
        data = {"title": "T", "url": "U", "thumbnail": "Th"}
        data[field] = "   "
        with pytest.raises(ValidationError):
            VideoReference(**data)

    def test_missing_field_rejected(self):
        with pytest.raises(ValidationError):
            VideoReference(title="T", url="U")


class TestTurn:
    def test_user_turn(self):
        turn = Turn(role=TurnRole.USER, text_parts=["hi"])
        assert turn.role == TurnRole.USER
        assert turn.image is None
        assert turn.video is None

    def test_user_turn_requires_text(self):
        with pytest.raises(ValidationError, match="User turns must carry text"):
            Turn(role=TurnRole.USER, text_parts=[])

    def test_user_turn_cannot_carry_video(self, sample_video):
        with pytest.raises(ValidationError, match="Only model turns"):
            Turn(role=TurnRole.USER, text_parts=["hi"], video=sample_video)

    def test_model_turn_with_only_video(self, sample_video):
        turn = Turn(role=TurnRole.MODEL, video=sample_video)
        assert turn.text_parts == []
        assert turn.video == sample_video

    def test_role_from_string(self):
        assert Turn(role="model", text_parts=["x"]).role == TurnRole.MODEL


class TestConversation:
    def test_defaults(self):
        conversation = Conversation(id="c1", owner_id="u1")
        assert conversation.history == []
        assert conversation.created_at.tzinfo is not None

    def test_serialization(self):
        conversation = Conversation(
            id="c1",
            owner_id="u1",
            history=[Turn(role=TurnRole.USER, text_parts=["hi"])],
        )
        data = conversation.model_dump()
        assert data["history"][0]["role"] == "user"
        assert data["history"][0]["text_parts"] == ["hi"]


class TestSessionIndexEntry:
    def test_contains(self):
        entry = SessionIndexEntry(
            owner_id="u1",
            summaries=[
                ConversationSummary(id="c1", title="First"),
                ConversationSummary(id="c2", title="Second"),
            ],
        )
        assert entry.contains("c2")
        assert not entry.contains("c3")

    def test_empty_entry(self):
        assert not SessionIndexEntry(owner_id="u1").contains("c1")
