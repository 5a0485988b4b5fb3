"""
Credential storage for skylark-curl

Keeps provisioned HMAC secrets in the OS keychain so they do not have to be
passed on the command line. Secrets are keyed by token id.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..exceptions import StorageError

logger = logging.getLogger(__name__)

# Constants
STORAGE_SERVICE_NAME = "skylark-curl"


@dataclass
class StorageMetadata:
    """
    Metadata for stored secrets

    Attributes:
        token: Token id the secret belongs to
        storage_type: Where the secret lives
        stored_at: Timestamp when the secret was stored
    """
    token: str
    storage_type: str
    stored_at: str


class CredentialStore:
    """
    OS keychain backed store of shared secrets
    """

    def __init__(self, service_name: str = STORAGE_SERVICE_NAME):
        """
        Initialize credential storage

        Args:
            service_name: Keyring service the secrets are filed under
        """
        self.service_name = service_name

    def _check_token(self, token: str) -> None:
        if not token or not isinstance(token, str):
            raise StorageError("Token must be a non-empty string", "INVALID_TOKEN")

    def store_secret(self, token: str, secret: str) -> StorageMetadata:
        """
        Store the secret for a token, replacing any previous one

        Raises:
            StorageError: If the token or secret is empty or the keyring fails
        """
        self._check_token(token)
        if not secret or not isinstance(secret, str):
            raise StorageError("Secret must be a non-empty string", "INVALID_SECRET")

        try:
            keyring.set_password(self.service_name, token, secret)
        except KeyringError as e:
            raise StorageError(
                f"Keyring storage failed: {e}",
                "KEYRING_STORAGE_FAILED"
            )

        logger.info(f"Stored secret for token {token}")
        return StorageMetadata(
            token=token,
            storage_type='keyring',
            stored_at=datetime.now(timezone.utc).isoformat()
        )

    def retrieve_secret(self, token: str) -> Optional[str]:
        """
        Look up the secret for a token

        Returns:
            str or None if no secret is stored for the token

        Raises:
            StorageError: If the keyring fails
        """
        self._check_token(token)
        try:
            return keyring.get_password(self.service_name, token)
        except KeyringError as e:
            raise StorageError(
                f"Keyring retrieval failed: {e}",
                "KEYRING_RETRIEVAL_FAILED"
            )

    def delete_secret(self, token: str) -> bool:
        """
        Delete the secret for a token

        Returns:
            bool: True if a secret was deleted, False if none was stored
        """
        self._check_token(token)
        try:
            keyring.delete_password(self.service_name, token)
        except PasswordDeleteError:
            return False
        except KeyringError as e:
            raise StorageError(
                f"Keyring deletion failed: {e}",
                "KEYRING_DELETE_FAILED"
            )
        logger.info(f"Deleted secret for token {token}")
        return True


def get_default_store() -> CredentialStore:
    """
    Get default credential store instance

    Returns:
        CredentialStore: Store filed under the default service name
    """
    return CredentialStore()
