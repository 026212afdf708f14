"""
Conversation identifier and summary title utilities.

This module decides when a caller-supplied conversation id asks for lazy
creation and how summary titles are derived from the first user message.
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_LAZY_SENTINEL = "none"

# Older clients send the string "null" for a conversation that does not exist yet
LEGACY_SENTINELS = frozenset({"null", "undefined"})

DEFAULT_TITLE_LENGTH = 40


def requests_lazy_creation(
    conversation_id: str | None, sentinel: str = DEFAULT_LAZY_SENTINEL
) -> bool:
    """
    Check whether a conversation id asks for a conversation to be minted.

    Args:
        conversation_id: Id supplied by the caller, possibly absent
        sentinel: Configured placeholder meaning "no conversation yet"

    Returns:
        True if a new conversation must be created
    """
    if conversation_id is None:
        return True

    normalized = conversation_id.strip().lower()
    if normalized in LEGACY_SENTINELS:
        logger.debug(f"Treating legacy conversation id {conversation_id!r} as lazy")
        return True
    return not normalized or normalized == sentinel


def derive_title(text: str, length: int = DEFAULT_TITLE_LENGTH) -> str:
    """
    Derive a summary title from the text that started a conversation.

    Args:
        text: First user message
        length: Maximum number of characters kept

    Returns:
        The first ``length`` characters of ``text``
    """
    return text[:length]
