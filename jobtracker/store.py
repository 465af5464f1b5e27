"""Cloud Firestore client for reading and writing job applications."""

import logging
from typing import Any, Callable

from google.auth.credentials import Credentials
from google.cloud import firestore

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[dict[str, dict[str, Any]]], None]
ErrorCallback = Callable[[Exception], None]


def collection_path(app_id: str, user_id: str) -> str:
    """Path of a user's job application collection."""
    return f"artifacts/{app_id}/users/{user_id}/jobApplications"


def document_path(app_id: str, user_id: str, job_id: str) -> str:
    """Path of a single job application document."""
    return f"{collection_path(app_id, user_id)}/{job_id}"


class FirestoreStore:
    """Thin adapter over a Firestore client.

    Snapshots are handed to subscribers as plain mappings of document id to
    field mapping, in the order the store returned them.
    """

    def __init__(self, client: firestore.Client):
        self._client = client

    @classmethod
    def connect(cls, project_id: str, credentials: Credentials) -> "FirestoreStore":
        """Open a client authenticated as the signed-in user."""
        client = firestore.Client(project=project_id, credentials=credentials)
        logger.info(f"Connected to Firestore project {project_id}")
        return cls(client)

    def subscribe(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Callable[[], None]:
        """Watch a collection; returns a callable that closes the watch.

        ``on_error`` receives failures raised while a snapshot is processed.
        Failures of the watch stream itself (permission denied, for example)
        are closed on the client's background thread and never reach it, so
        callers should treat a first snapshot that never arrives as a stall.
        """

        def callback(docs, changes, read_time):
            try:
                on_snapshot({doc.id: doc.to_dict() or {} for doc in docs})
            except Exception as e:
                on_error(e)

        watch = self._client.collection(path).on_snapshot(callback)
        logger.debug(f"Subscribed to {path}")
        return watch.unsubscribe

    def add(self, path: str, fields: dict[str, Any]) -> str:
        """Create a document with a store-assigned id."""
        _, ref = self._client.collection(path).add(fields)
        return ref.id

    def update(self, path: str, fields: dict[str, Any]) -> None:
        """Partially update an existing document; fails if it does not exist."""
        self._client.document(path).update(fields)

    def delete(self, path: str) -> None:
        """Delete a document."""
        self._client.document(path).delete()
