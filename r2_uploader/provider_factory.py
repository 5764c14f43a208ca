"""
Factory for creating storage backend instances.

Simplifies backend selection and initialization.
"""

from typing import Optional

from shared.exceptions import ConfigurationError
from shared.models import CloudflareCredentials, TransferConfig
from .storage_provider import S3StorageProvider
from .cloudflare_r2 import CloudflareR2Provider


class StorageProviderFactory:
    """Factory for creating storage backend instances."""

    @staticmethod
    def create(credentials: CloudflareCredentials,
               config: Optional[TransferConfig] = None) -> S3StorageProvider:
        """
        Create a storage backend.

        Args:
            credentials: Account ID and static key pair
            config: Transfer settings; retry and pool sizing come from here

        Returns:
            Storage backend instance

        Raises:
            ConfigurationError: If the credentials are incomplete
        """
        if not credentials.is_complete():
            raise ConfigurationError(
                "credentials need an account ID, access key, secret key and bucket name"
            )
        return CloudflareR2Provider(credentials, config)
