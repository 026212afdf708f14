"""
Identity capability consumed by the orchestrator.

Verifying a request is outside this package; a provider only hands back a
trusted, opaque owner id or refuses.
"""

import logging
from abc import ABC, abstractmethod

from .exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)


class IdentityProvider(ABC):
    """Source of the trusted owner id for the current caller."""

    @abstractmethod
    async def get_owner_id(self) -> str:
        """
        Resolve the caller's owner id.

        Raises:
            UnauthenticatedError: No valid identity
        """
        pass


class StaticIdentityProvider(IdentityProvider):
    """Identity fixed at construction time, as used by the CLI."""

    def __init__(self, owner_id: str | None):
        self._owner_id = owner_id.strip() if owner_id else None

    async def get_owner_id(self) -> str:
        if not self._owner_id:
            logger.warning("Identity requested but no owner id is configured")
            raise UnauthenticatedError("Unauthenticated!")
        return self._owner_id

    def __repr__(self) -> str:
        return f"StaticIdentityProvider(owner_id={self._owner_id!r})"
