"""
Database module for conversation storage and the per-owner session index.
"""

from .encryption import EncryptionManager
from .engine import Database
from .models import Base, ConversationRecord, SessionIndexRecord, SummaryRecord, TurnRecord
from .session_index import SessionIndex
from .store import ConversationStore

__all__ = [
    "Base",
    "ConversationRecord",
    "ConversationStore",
    "Database",
    "EncryptionManager",
    "SessionIndex",
    "SessionIndexRecord",
    "SummaryRecord",
    "TurnRecord",
]
