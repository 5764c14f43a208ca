"""
Abstract base class for S3-compatible storage backends.

This module defines the operations the transfer engine and the link issuer
need from a backend: single-request puts, the multipart construction
protocol, and presigned GET URLs.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional


class S3StorageProvider(ABC):
    """
    Interface for S3-compatible storage backends.

    Implementations let transport errors propagate; the transfer engine and
    link issuer wrap them with the file or key they belong to.
    """

    @abstractmethod
    def put_object(self, bucket: str, key: str, body: bytes) -> None:
        """
        Store ``body`` as one object in a single request.

        Args:
            bucket: Target bucket
            key: Object key
            body: Full object content
        """
        pass

    @abstractmethod
    def create_multipart_upload(self, bucket: str, key: str) -> str:
        """
        Start a multipart upload.

        Returns:
            Upload ID used by the part, complete and abort calls
        """
        pass

    @abstractmethod
    def upload_part(self, bucket: str, key: str, upload_id: str,
                    part_number: int, body: bytes) -> str:
        """
        Upload one part of a multipart upload.

        Args:
            part_number: 1-based part index
            body: Part content

        Returns:
            ETag the backend assigned to the part
        """
        pass

    @abstractmethod
    def complete_multipart_upload(self, bucket: str, key: str, upload_id: str,
                                  parts: List[Dict[str, Any]]) -> None:
        """
        Assemble uploaded parts into the final object.

        Args:
            parts: ``{"PartNumber": n, "ETag": etag}`` entries in ascending
                part order
        """
        pass

    @abstractmethod
    def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        """Discard a multipart upload and every part stored for it."""
        pass

    @abstractmethod
    def head_object(self, bucket: str, key: str) -> Optional[Dict[str, Any]]:
        """
        Fetch object metadata.

        Returns:
            Dict with at least ``size``, or None if the object does not exist
        """
        pass

    @abstractmethod
    def generate_presigned_get(self, bucket: str, key: str, expires_in: int) -> str:
        """
        Sign a GET URL for one object.

        Args:
            expires_in: Validity window in seconds from now

        Returns:
            The presigned URL
        """
        pass

    @abstractmethod
    def verify_access(self, bucket: str) -> None:
        """
        Check that ``bucket`` is reachable with the configured credentials.

        Raises:
            The backend error when the bucket is missing or access is denied
        """
        pass

    def object_exists(self, bucket: str, key: str) -> bool:
        return self.head_object(bucket, key) is not None
