"""
SQLAlchemy models for conversation storage and the session index.
"""

from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class ConversationRecord(Base):
    """Conversation owned by one user."""

    __tablename__ = "conversations"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    owner_id = Column(String, nullable=False)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    turns: Mapped[list["TurnRecord"]] = relationship(
        "TurnRecord",
        back_populates="conversation",
        order_by="TurnRecord.seq",
    )

    __table_args__ = (
        Index("idx_conversations_owner", "owner_id", "id"),
        Index("idx_conversations_created_at", "created_at"),
    )


class TurnRecord(Base):
    """
    One history entry.

    ``seq`` is assigned by the database on insert and defines history order.
    """

    __tablename__ = "turns"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(String, ForeignKey("conversations.id"), nullable=False)

    role = Column(String, nullable=False)  # 'user' or 'model'

    # Content (encrypted JSON list of text parts)
    text_parts_encrypted = Column(Text, nullable=False)
    encryption_key_id = Column(String, nullable=False)

    image = Column(String, nullable=True)

    video_title = Column(String, nullable=True)
    video_url = Column(String, nullable=True)
    video_thumbnail = Column(String, nullable=True)

    created_at = Column(DateTime, default=func.now(), nullable=False)

    conversation: Mapped["ConversationRecord"] = relationship(
        "ConversationRecord", back_populates="turns"
    )

    __table_args__ = (Index("idx_turns_conversation", "conversation_id", "seq"),)


class SessionIndexRecord(Base):
    """Per-owner index entry; at most one row per owner."""

    __tablename__ = "session_indexes"

    owner_id = Column(String, primary_key=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    summaries: Mapped[list["SummaryRecord"]] = relationship(
        "SummaryRecord",
        back_populates="entry",
        order_by="SummaryRecord.seq",
    )


class SummaryRecord(Base):
    """Conversation summary inside an owner's index entry."""

    __tablename__ = "conversation_summaries"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String, ForeignKey("session_indexes.owner_id"), nullable=False)
    conversation_id = Column(String, nullable=False)
    title = Column(String, nullable=False)

    created_at = Column(DateTime, default=func.now(), nullable=False)

    entry: Mapped["SessionIndexRecord"] = relationship(
        "SessionIndexRecord", back_populates="summaries"
    )

    __table_args__ = (
        Index("idx_summaries_owner", "owner_id", "seq"),
        Index("idx_summaries_conversation", "conversation_id"),
    )
