"""
Service factory utilities for wiring Dialog Ledger components.

Stores, the registrar and content source clients are built once from
application configuration and passed explicitly to whoever needs them.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from ..clients import GeminiClient, TextGenerationClient, VideoSearchClient, YouTubeClient
from ..config.settings import AppSettings, get_settings
from ..database import ConversationStore, Database, EncryptionManager, SessionIndex
from ..orchestration.registrar import SessionRegistrar

logger = logging.getLogger(__name__)

MASTER_KEY_FILE = "master.key"


@dataclass
class Services:
    """Process-wide component instances."""

    settings: AppSettings
    database: Database
    conversation_store: ConversationStore
    session_index: SessionIndex
    registrar: SessionRegistrar
    text_client: TextGenerationClient | None = None
    video_client: VideoSearchClient | None = None

    async def close(self) -> None:
        """Release clients and database connections."""
        for client in (self.text_client, self.video_client):
            if client is not None:
                await client.close()
        await self.database.close()


def create_text_client(settings: AppSettings) -> TextGenerationClient | None:
    """Create the text generation client, or None if no API key is configured."""
    api_key = settings.get_api_key("gemini")
    if not api_key:
        logger.info("Gemini API key not configured; text generation unavailable")
        return None

    return GeminiClient(
        api_key=api_key,
        model=settings.gemini.model,
        base_url=settings.gemini.base_url,
        max_output_tokens=settings.gemini.max_output_tokens,
        timeout=settings.api.timeout,
        max_retries=settings.api.retries,
        max_delay=settings.api.max_backoff,
    )


def create_video_client(settings: AppSettings) -> VideoSearchClient | None:
    """Create the video lookup client, or None if no API key is configured."""
    api_key = settings.get_api_key("youtube")
    if not api_key:
        logger.info("YouTube API key not configured; video lookup unavailable")
        return None

    return YouTubeClient(
        api_key=api_key,
        base_url=settings.youtube.base_url,
        safe_search=settings.youtube.safe_search,
        timeout=settings.api.timeout,
        max_retries=settings.api.retries,
        max_delay=settings.api.max_backoff,
    )


def create_services(
    settings: AppSettings | None = None,
    database_url: str | None = None,
    with_clients: bool = True,
) -> Services:
    """
    Build every component from configuration.

    Args:
        settings: Application settings, defaults to the global settings
        database_url: Override for the configured database location
        with_clients: Also create the content source clients

    Returns:
        Wired services
    """
    settings = settings or get_settings()

    database = Database(
        database_url or settings.get_database_url(), echo=settings.database.echo
    )
    encryption_manager = EncryptionManager(
        master_key=settings.database_encryption_key,
        enabled=settings.database.encryption_enabled,
        key_file=Path(settings.data_dir) / MASTER_KEY_FILE,
    )
    conversation_store = ConversationStore(database, encryption_manager)
    session_index = SessionIndex(database)
    registrar = SessionRegistrar(
        conversation_store,
        session_index,
        title_length=settings.conversation.title_length,
        lazy_sentinel=settings.conversation.lazy_sentinel,
    )

    services = Services(
        settings=settings,
        database=database,
        conversation_store=conversation_store,
        session_index=session_index,
        registrar=registrar,
    )
    if with_clients:
        services.text_client = create_text_client(settings)
        services.video_client = create_video_client(settings)

    logger.debug(f"Services created for {database.database_url}")
    return services
