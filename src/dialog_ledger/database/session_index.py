"""
SessionIndex: per-owner ordered list of conversation summaries.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..core.exceptions import ConflictError, NotFoundError
from ..core.models import ConversationSummary, SessionIndexEntry
from .engine import Database
from .models import SessionIndexRecord, SummaryRecord

logger = logging.getLogger(__name__)


class SessionIndex:
    """Owns the summary index used to list an owner's conversations."""

    def __init__(self, database: Database):
        self.database = database
        self.AsyncSessionLocal = database.AsyncSessionLocal

    async def list_summaries(self, owner_id: str) -> list[ConversationSummary]:
        """Summaries of an owner in insertion order; empty if the owner has no entry."""
        async with self.AsyncSessionLocal() as session:
            result = await session.execute(
                select(SummaryRecord)
                .where(SummaryRecord.owner_id == owner_id)
                .order_by(SummaryRecord.seq)
            )
            return [
                ConversationSummary(id=record.conversation_id, title=record.title)
                for record in result.scalars().all()
            ]

    async def get_entry(self, owner_id: str) -> SessionIndexEntry | None:
        """Full index entry of an owner, or None if none was created yet."""
        async with self.AsyncSessionLocal() as session:
            entry = await session.get(SessionIndexRecord, owner_id)
            if entry is None:
                return None

        return SessionIndexEntry(
            owner_id=owner_id, summaries=await self.list_summaries(owner_id)
        )

    async def create_entry_with_first(
        self, owner_id: str, summary: ConversationSummary
    ) -> None:
        """
        Create the owner's index entry holding exactly one summary.

        Raises:
            ConflictError: The owner already has an entry
        """
        async with self.AsyncSessionLocal() as session:
            session.add(SessionIndexRecord(owner_id=owner_id))
            session.add(
                SummaryRecord(
                    owner_id=owner_id,
                    conversation_id=summary.id,
                    title=summary.title,
                )
            )
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(
                    "Session index entry already exists",
                    details={"owner_id": owner_id},
                ) from e

        logger.info(f"Created session index for owner {owner_id} with {summary.id}")

    async def append_summary(self, owner_id: str, summary: ConversationSummary) -> None:
        """
        Append a summary to an existing index entry.

        Raises:
            NotFoundError: The owner has no entry yet
        """
        async with self.AsyncSessionLocal() as session:
            entry = await session.get(SessionIndexRecord, owner_id)
            if entry is None:
                raise NotFoundError(
                    "Session index entry not found", details={"owner_id": owner_id}
                )

            session.add(
                SummaryRecord(
                    owner_id=owner_id,
                    conversation_id=summary.id,
                    title=summary.title,
                )
            )
            await session.commit()

        logger.debug(f"Appended summary {summary.id} to index of owner {owner_id}")
