"""Firestore document source.

Literal collection paths are read with ``collection(path)``. Paths with
wildcards cannot be addressed directly, so they are read with a
collection-group query on the last collection id and filtered down to the
documents whose path fits the pattern.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore

from firestore_mirror.lib.errors import FetchError
from firestore_mirror.lib.paths import CollectionPathPattern
from firestore_mirror.lib.snapshot import DocumentSnapshot

logger = logging.getLogger(__name__)

# Credential failures are GoogleAuthError, not GoogleAPIError
GOOGLE_CLIENT_ERRORS = (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)

__all__ = ["DocumentSource", "FirestoreDocumentSource", "create_firestore_client"]


class DocumentSource(Protocol):
    def fetch(
        self,
        pattern: CollectionPathPattern,
        timeout: Optional[float] = None,
    ) -> List[DocumentSnapshot]:
        ...


def create_firestore_client(project_id: str) -> Any:
    """Create a Firestore client using application default credentials.

    Raises:
        FetchError: If no usable credentials are found
    """
    try:
        return firestore.Client(project=project_id)
    except GOOGLE_CLIENT_ERRORS as e:
        raise FetchError(
            f"Cannot create a Firestore client for project {project_id}",
            cause=e,
        ) from e


class FirestoreDocumentSource:
    """Reads the full current set of documents under a collection pattern."""

    def __init__(self, client: Any):
        self.client = client

    def _query(self, pattern: CollectionPathPattern) -> Any:
        if pattern.has_wildcards:
            return self.client.collection_group(pattern.collection_id)
        return self.client.collection(str(pattern))

    def fetch(
        self,
        pattern: CollectionPathPattern,
        timeout: Optional[float] = None,
    ) -> List[DocumentSnapshot]:
        """Fetch every document in the collection(s) matching the pattern.

        Raises:
            FetchError: If Firestore cannot be read
        """
        query = self._query(pattern)
        kwargs = {"timeout": timeout} if timeout is not None else {}

        documents: List[DocumentSnapshot] = []
        skipped = 0
        try:
            for snapshot in query.stream(**kwargs):
                if not snapshot.exists:
                    continue
                if pattern.has_wildcards and not pattern.matches(snapshot.reference.path):
                    skipped += 1
                    continue
                documents.append(DocumentSnapshot.from_firestore(snapshot))
        except GOOGLE_CLIENT_ERRORS as e:
            raise FetchError(
                f"Failed to read documents from {pattern}",
                collection_path=str(pattern),
                cause=e,
            ) from e

        if skipped:
            logger.debug(
                "Skipped %d '%s' documents outside %s",
                skipped,
                pattern.collection_id,
                pattern,
            )
        logger.info("Fetched %d documents from %s", len(documents), pattern)
        return documents
