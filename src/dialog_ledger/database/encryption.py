"""
Encryption manager for field-level encryption of turn text.
"""

import base64
import logging
import os
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..core.exceptions import DecryptionError

logger = logging.getLogger(__name__)

MASTER_KEY_ENV = "DIALOG_LEDGER_MASTER_KEY"
PLAINTEXT_KEY_ID = "plain"


class EncryptionManager:
    """Manages field-level encryption for conversation content."""

    def __init__(
        self,
        master_key: str | None = None,
        enabled: bool = True,
        key_file: Path | None = None,
    ):
        """
        Initialize the manager.

        Args:
            master_key: Master key, falls back to DIALOG_LEDGER_MASTER_KEY
            enabled: Encrypt new data; plaintext rows stay readable either way
            key_file: Where a generated master key is kept when none is configured
        """
        self.enabled = enabled
        self._encryption_keys: dict[str, Fernet] = {}
        self._current_key_id: str = PLAINTEXT_KEY_ID
        self._master_key: str | None = None
        if enabled:
            self._initialize_encryption(master_key, key_file)

    def _initialize_encryption(
        self, master_key: str | None, key_file: Path | None
    ) -> None:
        """Initialize encryption with the configured, stored or a generated master key."""
        master_key = master_key or os.environ.get(MASTER_KEY_ENV)

        if not master_key and key_file is not None:
            master_key = self._load_or_create_key_file(Path(key_file))

        if not master_key:
            # Records written with a generated key are unreadable after restart
            logger.warning(
                f"No master key configured ({MASTER_KEY_ENV}); using an ephemeral key"
            )
            master_key = base64.urlsafe_b64encode(os.urandom(32)).decode()

        self._master_key = master_key
        self._current_key_id = "primary_v1"
        self._encryption_keys[self._current_key_id] = Fernet(
            self._derive_key(master_key, self._current_key_id)
        )

    def _load_or_create_key_file(self, key_file: Path) -> str:
        """Read the stored master key, generating and storing one on first use."""
        key_file.parent.mkdir(parents=True, exist_ok=True)
        generated = base64.urlsafe_b64encode(os.urandom(32)).decode()

        try:
            # Exclusive create: a concurrent process that wins keeps its key
            with open(key_file, "x", encoding="utf-8") as f:
                f.write(generated)
        except FileExistsError:
            master_key = key_file.read_text(encoding="utf-8").strip()
            if not master_key:
                raise DecryptionError(
                    "Stored master key is empty", details={"key_file": str(key_file)}
                ) from None
            logger.debug(f"Loaded master key from {key_file}")
            return master_key

        os.chmod(key_file, 0o600)
        logger.info(f"Generated master key stored at {key_file}")
        return generated

    def _derive_key(self, master_key: str, key_id: str) -> bytes:
        """Derive encryption key from master key and key ID."""
        salt = key_id.encode("utf-8").ljust(16, b"0")[:16]

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=100000,
        )

        return base64.urlsafe_b64encode(kdf.derive(master_key.encode()))

    def encrypt(self, data: str) -> tuple[str, str]:
        """
        Encrypt data and return (encrypted_data, key_id).

        With encryption disabled the data is returned unchanged under the
        plaintext key id.
        """
        if not self.enabled:
            return data, PLAINTEXT_KEY_ID

        fernet = self._encryption_keys[self._current_key_id]
        encrypted_bytes = fernet.encrypt(data.encode("utf-8"))
        return base64.b64encode(encrypted_bytes).decode("utf-8"), self._current_key_id

    def decrypt(self, encrypted_data: str, key_id: str) -> str:
        """
        Decrypt data using the specified key ID.

        Raises:
            DecryptionError: Key unavailable or data does not match the key
        """
        if key_id == PLAINTEXT_KEY_ID:
            return encrypted_data

        if key_id not in self._encryption_keys:
            if not self._master_key:
                raise DecryptionError(
                    f"Encryption key {key_id} not available", details={"key_id": key_id}
                )
            self._encryption_keys[key_id] = Fernet(
                self._derive_key(self._master_key, key_id)
            )

        fernet = self._encryption_keys[key_id]
        try:
            decrypted_bytes = fernet.decrypt(
                base64.b64decode(encrypted_data.encode("utf-8"))
            )
        except InvalidToken as e:
            raise DecryptionError(
                f"Cannot decrypt data with key {key_id}", details={"key_id": key_id}
            ) from e

        return decrypted_bytes.decode("utf-8")

    def get_current_key_id(self) -> str:
        """Get the current key ID for new encryptions."""
        return self._current_key_id
