"""
Tests for the SessionIndex.
"""

import pytest

from dialog_ledger.core.exceptions import ConflictError, NotFoundError
from dialog_ledger.core.models import ConversationSummary


class TestSessionIndex:
    @pytest.mark.asyncio
    async def test_unknown_owner_has_no_summaries(self, session_index):
        assert await session_index.list_summaries("nobody") == []
        assert await session_index.get_entry("nobody") is None

    @pytest.mark.asyncio
    async def test_create_entry_with_first(self, session_index):
        summary = ConversationSummary(id="c1", title="Explain recursion")

        await session_index.create_entry_with_first("alice", summary)

        assert await session_index.list_summaries("alice") == [summary]
        entry = await session_index.get_entry("alice")
        assert entry.owner_id == "alice"
        assert entry.contains("c1")

    @pytest.mark.asyncio
    async def test_second_create_conflicts(self, session_index):
        await session_index.create_entry_with_first(
            "alice", ConversationSummary(id="c1", title="one")
        )

        with pytest.raises(ConflictError):
            await session_index.create_entry_with_first(
                "alice", ConversationSummary(id="c2", title="two")
            )

        summaries = await session_index.list_summaries("alice")
        assert [summary.id for summary in summaries] == ["c1"]

    @pytest.mark.asyncio
    async def test_append_keeps_insertion_order(self, session_index):
        await session_index.create_entry_with_first(
            "alice", ConversationSummary(id="c1", title="one")
        )
        await session_index.append_summary(
            "alice", ConversationSummary(id="c2", title="two")
        )
        await session_index.append_summary(
            "alice", ConversationSummary(id="c3", title="three")
        )

        summaries = await session_index.list_summaries("alice")
        assert [summary.id for summary in summaries] == ["c1", "c2", "c3"]

    @pytest.mark.asyncio
    async def test_append_without_entry(self, session_index):
        with pytest.raises(NotFoundError):
            await session_index.append_summary(
                "alice", ConversationSummary(id="c1", title="one")
            )

    @pytest.mark.asyncio
    async def test_owners_are_separate(self, session_index):
        await session_index.create_entry_with_first(
            "alice", ConversationSummary(id="c1", title="one")
        )
        await session_index.create_entry_with_first(
            "bob", ConversationSummary(id="c2", title="two")
        )

        assert [s.id for s in await session_index.list_summaries("alice")] == ["c1"]
        assert [s.id for s in await session_index.list_summaries("bob")] == ["c2"]
