"""API token storage using the system keychain."""

import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

__all__ = ["KeychainManager"]

logger = logging.getLogger(__name__)

SERVICE_NAME = "Replay Sync"


class KeychainManager:
    """Stores one API token per account hash."""

    def __init__(self, service_name: str = SERVICE_NAME):
        self.service_name = service_name

    def store(self, account_hash: str, token: str) -> bool:
        """Store the token for an account.

        Returns:
            True if stored successfully
        """
        try:
            keyring.set_password(self.service_name, account_hash, token)
            logger.info(f"Token stored for account {account_hash}")
            return True
        except KeyringError as e:
            logger.error(f"Failed to store token: {e}")
            return False

    def load(self, account_hash: str) -> Optional[str]:
        """Load the token for an account, or None if there is none."""
        try:
            return keyring.get_password(self.service_name, account_hash) or None
        except KeyringError as e:
            logger.error(f"Failed to load token: {e}")
            return None

    def delete(self, account_hash: str) -> bool:
        """Delete the stored token.

        Returns:
            True if deleted (or didn't exist)
        """
        try:
            keyring.delete_password(self.service_name, account_hash)
            logger.info("Token deleted")
            return True
        except PasswordDeleteError:
            return True
        except KeyringError as e:
            logger.error(f"Failed to delete token: {e}")
            return False
