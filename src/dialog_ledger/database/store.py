"""
ConversationStore for managing conversation storage and retrieval.
"""

import json
import logging
from collections.abc import Sequence
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..core.models import Conversation, Turn, TurnRole, VideoReference
from .encryption import EncryptionManager
from .engine import Database
from .models import ConversationRecord, TurnRecord

logger = logging.getLogger(__name__)


class ConversationStore:
    """Owns conversation records and their append-only turn history."""

    def __init__(self, database: Database, encryption_manager: EncryptionManager):
        self.database = database
        self.encryption_manager = encryption_manager
        self.AsyncSessionLocal = database.AsyncSessionLocal

    async def create(self, owner_id: str) -> str:
        """
        Create a conversation with an empty history.

        Returns:
            The new conversation ID
        """
        async with self.AsyncSessionLocal() as session:
            conversation = ConversationRecord(id=str(uuid4()), owner_id=owner_id)
            session.add(conversation)
            await session.commit()

            logger.info(f"Created conversation {conversation.id} for owner {owner_id}")
            return str(conversation.id)

    async def append(
        self, conversation_id: str, owner_id: str, turns: Sequence[Turn]
    ) -> Conversation:
        """
        Append turns, in order, to the end of a conversation's history.

        Args:
            conversation_id: Conversation to extend
            owner_id: Caller's owner id, must match the conversation owner
            turns: Non-empty ordered turns

        Returns:
            The updated conversation

        Raises:
            NotFoundError: No conversation with this id is owned by owner_id
            DecryptionError: Stored turns cannot be read with the current key
        """
        if not turns:
            raise ValueError("At least one turn is required")

        async with self.AsyncSessionLocal() as session:
            result = await session.execute(
                update(ConversationRecord)
                .where(
                    ConversationRecord.id == conversation_id,
                    ConversationRecord.owner_id == owner_id,
                )
                .values(updated_at=func.now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(
                    "Chat not found or unauthorized.",
                    details={"conversation_id": conversation_id},
                )

            for turn in turns:
                session.add(self._to_record(conversation_id, turn))
                # One flush per turn so sequence numbers follow the given order
                await session.flush()

            # Reload before commit so an unreadable history rolls the append back
            conversation = await self._load(session, conversation_id, owner_id)
            await session.commit()
            logger.debug(f"Appended {len(turns)} turns to conversation {conversation_id}")

            return conversation

    async def get_by_id(self, conversation_id: str, owner_id: str) -> Conversation:
        """
        Retrieve a conversation with its full history.

        Raises:
            NotFoundError: No conversation with this id is owned by owner_id
            DecryptionError: Stored turns cannot be read with the current key
        """
        async with self.AsyncSessionLocal() as session:
            return await self._load(session, conversation_id, owner_id)

    async def list_for_owner(self, owner_id: str) -> list[Conversation]:
        """Get all conversations of an owner, oldest first."""
        async with self.AsyncSessionLocal() as session:
            result = await session.execute(
                select(ConversationRecord.id)
                .where(ConversationRecord.owner_id == owner_id)
                .order_by(ConversationRecord.created_at, ConversationRecord.id)
            )
            conversation_ids = result.scalars().all()

            return [
                await self._load(session, conversation_id, owner_id)
                for conversation_id in conversation_ids
            ]

    async def _load(
        self, session: AsyncSession, conversation_id: str, owner_id: str
    ) -> Conversation:
        result = await session.execute(
            select(ConversationRecord).where(
                ConversationRecord.id == conversation_id,
                ConversationRecord.owner_id == owner_id,
            )
        )
        conversation = result.scalar_one_or_none()

        if not conversation:
            raise NotFoundError(
                "Chat not found or unauthorized.",
                details={"conversation_id": conversation_id},
            )

        result = await session.execute(
            select(TurnRecord)
            .where(TurnRecord.conversation_id == conversation_id)
            .order_by(TurnRecord.seq)
        )
        records = result.scalars().all()

        return Conversation(
            id=conversation.id,
            owner_id=conversation.owner_id,
            history=[self._from_record(record) for record in records],
            created_at=conversation.created_at,
            updated_at=conversation.updated_at or conversation.created_at,
        )

    def _to_record(self, conversation_id: str, turn: Turn) -> TurnRecord:
        """Build a turn row, encrypting the text parts."""
        encrypted_parts, key_id = self.encryption_manager.encrypt(
            json.dumps(turn.text_parts)
        )

        video = turn.video
        return TurnRecord(
            conversation_id=conversation_id,
            role=turn.role.value,
            text_parts_encrypted=encrypted_parts,
            encryption_key_id=key_id,
            image=turn.image,
            video_title=video.title if video else None,
            video_url=video.url if video else None,
            video_thumbnail=video.thumbnail if video else None,
        )

    def _from_record(self, record: TurnRecord) -> Turn:
        text_parts = json.loads(
            self.encryption_manager.decrypt(
                record.text_parts_encrypted, record.encryption_key_id
            )
        )

        video = None
        if record.video_url:
            video = VideoReference(
                title=record.video_title,
                url=record.video_url,
                thumbnail=record.video_thumbnail,
            )

        return Turn(
            role=TurnRole(record.role),
            text_parts=text_parts,
            image=record.image,
            video=video,
        )
