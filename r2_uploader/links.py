"""
Presigned retrieval links for uploaded objects.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Tuple

from shared.constants import DEFAULT_LINK_EXPIRY_SECONDS
from shared.exceptions import SigningError
from shared.models import LinkFailure, PresignedLink, StoredObjectRef
from .storage_provider import S3StorageProvider

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LinkIssuer:
    """Signs GET URLs that let anyone fetch an object until the window closes."""

    def __init__(self, storage: S3StorageProvider,
                 expires_in: int = DEFAULT_LINK_EXPIRY_SECONDS,
                 clock: Optional[Callable[[], datetime]] = None):
        self.storage = storage
        self.expires_in = expires_in
        self._clock = clock or _utcnow

    def issue(self, ref: StoredObjectRef) -> PresignedLink:
        """
        Sign a retrieval URL for ``ref``.

        Raises:
            SigningError: the backend client could not produce a URL
        """
        issued_at = self._clock()
        try:
            url = self.storage.generate_presigned_get(ref.bucket, ref.key, self.expires_in)
        except Exception as e:
            raise SigningError(ref.key, e) from e
        if not url:
            raise SigningError(ref.key, ValueError("backend returned an empty URL"))
        return PresignedLink(ref=ref, url=url, expires_at=issued_at + timedelta(seconds=self.expires_in))

    def issue_all(self, refs: Iterable[StoredObjectRef]) -> Tuple[List[PresignedLink], List[LinkFailure]]:
        """Sign every ref; a failure for one key is recorded and skipped."""
        links = []
        failures = []
        for ref in refs:
            try:
                links.append(self.issue(ref))
            except SigningError as e:
                logger.warning("Couldn't generate URL for %s: %s", ref.key, e.cause)
                failures.append(LinkFailure(ref=ref, error=e))
        return links, failures
