"""
Shared test fixtures and configuration for Dialog Ledger tests.

This file provides global state management, resource cleanup, a throwaway
SQLite database per test and fake content sources for orchestration tests.
"""

import asyncio
import logging
import os
import warnings
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from dialog_ledger.clients.base import TextGenerationClient, VideoSearchClient
from dialog_ledger.core.models import VideoReference

# Suppress specific warnings that can slow down tests
warnings.filterwarnings("ignore", category=DeprecationWarning)
warnings.filterwarnings("ignore", category=UserWarning, module="pydantic")

# Configure logging for tests
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@pytest.fixture(autouse=True, scope="function")
def isolated_environment(tmp_path):
    """
    Isolate environment variables for each test to prevent test pollution.

    Configuration tests must not inherit API keys, owner ids or encryption
    keys from the host system, .env files or other tests.
    """
    sensitive_env_vars = [
        "LOG_LEVEL",
        "ENVIRONMENT",
        "APP_NAME",
        "GEMINI_API_KEY",
        "YOUTUBE_API_KEY",
        "DATABASE_ENCRYPTION_KEY",
        "DEFAULT_OWNER_ID",
        "DIALOG_LEDGER_MASTER_KEY",
        "DATABASE__PATH",
    ]

    original_env = {}
    for var in sensitive_env_vars:
        original_env[var] = os.environ.get(var)
        if var in os.environ:
            del os.environ[var]

    # Change working directory to temp path to avoid loading .env files
    original_cwd = os.getcwd()
    os.chdir(tmp_path)

    yield

    os.chdir(original_cwd)
    for var, original_value in original_env.items():
        if original_value is not None:
            os.environ[var] = original_value
        elif var in os.environ:
            del os.environ[var]


@pytest.fixture(autouse=True, scope="function")
def reset_global_state():
    """Reset the configuration manager before and after each test."""
    from dialog_ledger.config.settings import config_manager

    config_manager.reset()
    yield
    config_manager.reset()


@pytest.fixture(autouse=True, scope="function")
def mock_asyncio_sleep():
    """
    Mock asyncio.sleep to prevent actual delays during testing.

    Retry backoff would otherwise slow down client tests.
    """
    with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'data' / 'test.db'}"


@pytest_asyncio.fixture
async def database(database_url):
    """Fresh on-disk database, disposed after the test."""
    from dialog_ledger.database import Database

    db = Database(database_url)
    yield db
    await db.close()


@pytest.fixture
def encryption_manager():
    from dialog_ledger.database import EncryptionManager

    return EncryptionManager(master_key="test-master-key")


@pytest.fixture
def conversation_store(database, encryption_manager):
    from dialog_ledger.database import ConversationStore

    return ConversationStore(database, encryption_manager)


@pytest.fixture
def session_index(database):
    from dialog_ledger.database import SessionIndex

    return SessionIndex(database)


@pytest.fixture
def registrar(conversation_store, session_index):
    from dialog_ledger.orchestration import SessionRegistrar

    return SessionRegistrar(conversation_store, session_index)


class FakeTextSource(TextGenerationClient):
    """
    Scripted answer stream.

    ``gate`` holds the stream after the first fragment until it is set;
    ``started`` is set once the first fragment was consumed and ``closed``
    once the generator has finished or been closed.
    """

    def __init__(self, fragments=("Recursion ", "is a function ", "calling itself.")):
        super().__init__("fake-text")
        self.fragments = list(fragments)
        self.error: BaseException | None = None
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.prompts: list[str] = []
        self.closed = False

    async def generate(self, prompt):
        self.prompts.append(prompt)
        try:
            for index, fragment in enumerate(self.fragments):
                if index == 1:
                    self.started.set()
                    if self.gate is not None:
                        await self.gate.wait()
                yield fragment
            self.started.set()
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True

    async def close(self):
        pass


class FakeVideoSource(VideoSearchClient):
    """Scripted video lookup returning ``result`` or raising ``error``."""

    def __init__(self, result=None):
        super().__init__("fake-video")
        self.result = result
        self.error: BaseException | None = None
        self.queries: list[str] = []

    async def search(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.result

    async def close(self):
        pass


@pytest.fixture
def sample_video():
    return VideoReference(
        title="Recursion in 5 minutes",
        url="https://www.youtube.com/watch?v=abc123",
        thumbnail="https://i.ytimg.com/vi/abc123/hqdefault.jpg",
    )


@pytest.fixture
def text_source():
    return FakeTextSource()


@pytest.fixture
def video_source(sample_video):
    return FakeVideoSource(result=sample_video)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: mark test as integration test")


def pytest_collection_modifyitems(config, items):
    """Add a timeout to every test to prevent hanging."""
    for item in items:
        if not any(mark.name == "timeout" for mark in item.iter_markers()):
            item.add_marker(pytest.mark.timeout(30))
