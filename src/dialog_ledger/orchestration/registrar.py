"""
SessionRegistrar keeps conversations and the session index in step.

Every conversation that receives turns has exactly one summary in its
owner's index. Registration is a read-then-write against the index without a
cross-operation lock, so two first conversations of a brand-new owner can
both try to create the index entry; the loser retries once as an append.
"""

import logging
from collections.abc import Mapping
from typing import Any

from ..core.exceptions import ConflictError, NotFoundError, RegistrationError
from ..core.models import Conversation, ConversationSummary, VideoReference
from ..core.turns import build_turns
from ..database.session_index import SessionIndex
from ..database.store import ConversationStore
from .session_manager import (
    DEFAULT_LAZY_SENTINEL,
    DEFAULT_TITLE_LENGTH,
    derive_title,
    requests_lazy_creation,
)

logger = logging.getLogger(__name__)


class SessionRegistrar:
    """
    Coordinates ConversationStore and SessionIndex.

    Both collaborators are injected; the registrar holds no state of its own
    beyond configuration.
    """

    def __init__(
        self,
        conversation_store: ConversationStore,
        session_index: SessionIndex,
        title_length: int = DEFAULT_TITLE_LENGTH,
        lazy_sentinel: str = DEFAULT_LAZY_SENTINEL,
    ):
        self.conversation_store = conversation_store
        self.session_index = session_index
        self.title_length = title_length
        self.lazy_sentinel = lazy_sentinel

    async def ensure_conversation_registered(
        self, owner_id: str, conversation_id: str, title_seed_text: str
    ) -> None:
        """
        Guarantee exactly one summary for ``conversation_id`` in the owner's index.

        Idempotent: a conversation that is already listed is left alone.

        Raises:
            RegistrationError: Entry creation conflicted and the append retry failed
        """
        summaries = await self.session_index.list_summaries(owner_id)
        if any(summary.id == conversation_id for summary in summaries):
            logger.debug(f"Conversation {conversation_id} already registered")
            return

        summary = ConversationSummary(
            id=conversation_id, title=derive_title(title_seed_text, self.title_length)
        )

        if summaries:
            await self.session_index.append_summary(owner_id, summary)
            logger.info(f"Registered conversation {conversation_id} for owner {owner_id}")
            return

        try:
            await self.session_index.create_entry_with_first(owner_id, summary)
        except ConflictError:
            # A concurrent registration created the entry first
            logger.warning(
                f"Index entry for owner {owner_id} created concurrently, "
                f"retrying {conversation_id} as append"
            )
            try:
                await self.session_index.append_summary(owner_id, summary)
            except (ConflictError, NotFoundError) as retry_error:
                raise RegistrationError(
                    "Failed to register conversation",
                    details={"owner_id": owner_id, "conversation_id": conversation_id},
                ) from retry_error

        logger.info(f"Registered conversation {conversation_id} for owner {owner_id}")

    async def create_or_reuse_conversation(
        self, owner_id: str, conversation_id: str | None, user_text: str
    ) -> str:
        """
        Return the conversation to append to, minting one when asked to.

        A supplied id is returned unchanged; it was registered when minted.
        """
        if not requests_lazy_creation(conversation_id, self.lazy_sentinel):
            return conversation_id  # type: ignore[return-value]

        new_id = await self.conversation_store.create(owner_id)
        await self.ensure_conversation_registered(owner_id, new_id, user_text)
        return new_id

    async def commit_turns(
        self,
        owner_id: str,
        conversation_id: str | None,
        user_text: str,
        model_text: str | None = None,
        image: str | None = None,
        video: VideoReference | Mapping[str, Any] | None = None,
    ) -> Conversation:
        """
        Fold one submission into a conversation.

        Turns are validated before anything is persisted, so a malformed video
        never creates a conversation.

        Returns:
            The updated conversation

        Raises:
            InvalidShapeError: Malformed video reference
            NotFoundError: Conversation missing or owned by someone else
            RegistrationError: Summary could not be registered
        """
        turns = build_turns(user_text, model_text=model_text, image=image, video=video)

        target_id = await self.create_or_reuse_conversation(
            owner_id, conversation_id, user_text
        )
        conversation = await self.conversation_store.append(target_id, owner_id, turns)

        logger.info(
            f"Committed {len(turns)} turns to conversation {target_id} "
            f"(history={len(conversation.history)})"
        )
        return conversation

    async def start_conversation(self, owner_id: str, text: str) -> Conversation:
        """Eagerly create a conversation whose history starts with ``text``."""
        conversation_id = await self.conversation_store.create(owner_id)
        await self.ensure_conversation_registered(owner_id, conversation_id, text)
        return await self.conversation_store.append(
            conversation_id, owner_id, build_turns(text)
        )

    async def list_conversations(self, owner_id: str) -> list[ConversationSummary]:
        return await self.session_index.list_summaries(owner_id)

    async def get_conversation(self, owner_id: str, conversation_id: str) -> Conversation:
        return await self.conversation_store.get_by_id(conversation_id, owner_id)
