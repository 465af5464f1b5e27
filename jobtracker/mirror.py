"""Live in-memory mirror of the signed-in user's job applications."""

import logging
import time
from datetime import date
from typing import Any, Callable, Optional

from .auth import Session
from .errors import SubscriptionError
from .models import JobApplication

logger = logging.getLogger(__name__)

JobList = tuple[JobApplication, ...]
MirrorListener = Callable[[JobList], None]


def build_job_list(documents: dict[str, dict[str, Any]]) -> JobList:
    """Rebuild the full list from a snapshot, most recent application first.

    Ties keep snapshot order; records without a usable date go last, also in
    snapshot order.
    """
    jobs = [JobApplication.from_document(doc_id, fields) for doc_id, fields in documents.items()]
    jobs.sort(key=lambda job: job.applied_date or date.min, reverse=True)
    return tuple(jobs)


class LiveCollectionMirror:
    """Keeps ``jobs`` equal to the latest snapshot of the user's collection.

    The list is never patched in place: every snapshot produces a new tuple
    which replaces the previous one in a single assignment.
    """

    def __init__(self, session: Session):
        self._session = session
        self._listeners: list[MirrorListener] = []
        self._unsubscribe_session: Optional[Callable[[], None]] = None
        self._unsubscribe_snapshot: Optional[Callable[[], None]] = None
        self._subscribed_path: Optional[str] = None
        self._generation = 0
        self._subscribed_at: Optional[float] = None
        self.jobs: JobList = ()
        self.loading = True
        self.last_error: Optional[SubscriptionError] = None

    def start(self) -> None:
        if self._unsubscribe_session is None:
            self._unsubscribe_session = self._session.add_listener(self._on_session_changed)

    def stop(self) -> None:
        self._close_subscription()
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None

    def add_listener(self, callback: MirrorListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def waiting_seconds(self) -> float:
        """Seconds the open subscription has gone without its first snapshot.

        Some watch failures end the stream without reaching ``on_error``; a
        subscription that waits too long is how callers notice them.
        """
        if not self.loading or self._subscribed_at is None:
            return 0.0
        return time.monotonic() - self._subscribed_at

    def _on_session_changed(self, session: Session) -> None:
        if not session.ready:
            if self._subscribed_path is not None:
                logger.info("Identity lost, closing job application subscription")
            self._close_subscription()
            if self.jobs:
                self._publish(())
            return

        path = session.collection_path()
        if path == self._subscribed_path:
            return

        self._close_subscription()
        self.loading = True
        self._subscribed_path = path
        self._subscribed_at = time.monotonic()
        generation = self._generation

        # Events from a subscription that has since been closed are dropped
        def on_snapshot(documents: dict[str, dict[str, Any]]) -> None:
            if generation == self._generation:
                self._on_snapshot(documents)

        def on_error(error: Exception) -> None:
            if generation == self._generation:
                self._on_error(error)

        try:
            unsubscribe = session.store.subscribe(path, on_snapshot, on_error)
        except Exception as e:
            self._on_error(e)
            return

        if generation == self._generation:
            self._unsubscribe_snapshot = unsubscribe
            logger.info(f"Listening for job applications at {path}")
        else:
            # Failed during subscribe(); release the watch right away
            unsubscribe()

    def _on_snapshot(self, documents: dict[str, dict[str, Any]]) -> None:
        jobs = build_job_list(documents)
        self.loading = False
        logger.debug(f"Snapshot applied: {len(jobs)} job applications")
        self._publish(jobs)

    def _publish(self, jobs: JobList) -> None:
        self.jobs = jobs
        for listener in list(self._listeners):
            try:
                listener(jobs)
            except Exception:
                logger.exception("Job list listener failed")

    def _on_error(self, error: Exception) -> None:
        self.last_error = SubscriptionError(f"Firestore snapshot error: {error}", original_error=error)
        self.loading = False
        logger.error(self.last_error.message)
        self._close_subscription()

    def _close_subscription(self) -> None:
        self._generation += 1
        if self._unsubscribe_snapshot is not None:
            unsubscribe = self._unsubscribe_snapshot
            self._unsubscribe_snapshot = None
            try:
                unsubscribe()
            except Exception as e:
                logger.warning(f"Error while closing subscription: {e}")
        self._subscribed_path = None
        self._subscribed_at = None
