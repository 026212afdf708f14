"""
Tests for lazy-creation detection and title derivation.
"""

import pytest

from dialog_ledger.orchestration.session_manager import (
    derive_title,
    requests_lazy_creation,
)


class TestRequestsLazyCreation:
    @pytest.mark.parametrize(
        "conversation_id", [None, "", "  ", "none", "None", " NONE ", "null", "undefined"]
    )
    def test_lazy_values(self, conversation_id):
        assert requests_lazy_creation(conversation_id) is True

    @pytest.mark.parametrize(
        "conversation_id", ["abc", "3f1c2a9e-7d41-4b55-9a7e-0d6f0c1b2a33", "nonexistent"]
    )
    def test_real_ids(self, conversation_id):
        assert requests_lazy_creation(conversation_id) is False

    def test_custom_sentinel(self):
        assert requests_lazy_creation("new", sentinel="new") is True
        assert requests_lazy_creation("none", sentinel="new") is False


class TestDeriveTitle:
    def test_short_text_unchanged(self):
        assert derive_title("Explain recursion") == "Explain recursion"

    def test_truncated_to_40_characters(self):
        text = "How do I configure logging for a Python package properly?"
        assert derive_title(text) == text[:40]
        assert len(derive_title(text)) == 40

    def test_custom_length(self):
        assert derive_title("abcdef", length=3) == "abc"
