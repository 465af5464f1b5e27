"""Add, status-update and delete commands against the user's collection.

None of these touch the mirrored list. A successful write shows up through
the next snapshot; a failed one is logged and never shows up at all.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import pydantic

from .auth import Session
from .errors import ValidationError, WriteError
from .models import STATUS_VALUES, NewJobApplication

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Confirm = Callable[[str], bool]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApplicationCommands:
    """User actions translated into point writes on the current session's collection."""

    def __init__(self, session: Session, clock: Optional[Clock] = None):
        self._session = session
        self._clock = clock or _utcnow
        self.last_error: Optional[Exception] = None

    def _report(self, error: Exception) -> None:
        self.last_error = error
        logger.error(str(error))

    def _ready(self, action: str) -> bool:
        if self._session.ready:
            return True
        logger.error(f"Cannot {action}: database or user ID not ready")
        return False

    def add_application(self, **fields: Any) -> Optional[str]:
        """Create a job application; returns the new document id, or None on failure."""
        if not self._ready("add job"):
            return None

        try:
            job = NewJobApplication.model_validate(fields)
        except pydantic.ValidationError as e:
            self._report(ValidationError(f"Invalid job application: {e}", original_error=e))
            return None

        payload = job.to_document(created_at=self._clock())
        try:
            job_id = self._session.store.add(self._session.collection_path(), payload)
        except Exception as e:
            self._report(WriteError(f"Error adding job: {e}", original_error=e))
            return None

        logger.info(f"Added job application {job_id}: {job.company} - {job.title}")
        return job_id

    def update_status(self, job_id: str, new_status: Optional[str]) -> bool:
        """Change only the status field of an existing application."""
        if not new_status:
            logger.warning(f"Ignoring empty status update for {job_id}")
            return False
        if new_status not in STATUS_VALUES:
            self._report(ValidationError(f"Unknown status {new_status!r}; expected one of {STATUS_VALUES}"))
            return False
        if not job_id:
            self._report(ValidationError("Status update requires a job id"))
            return False
        if not self._ready("update status"):
            return False

        try:
            self._session.store.update(self._session.document_path(job_id), {"status": new_status})
        except Exception as e:
            self._report(WriteError(f"Error updating status: {e}", original_error=e))
            return False

        logger.info(f"Updated status of {job_id} to {new_status}")
        return True

    def delete_application(self, job_id: str, confirm: Confirm) -> bool:
        """Permanently delete an application once ``confirm(job_id)`` agrees."""
        if not job_id or not self._session.ready:
            return False

        if not confirm(job_id):
            logger.info(f"Deletion of {job_id} cancelled")
            return False

        try:
            self._session.store.delete(self._session.document_path(job_id))
        except Exception as e:
            self._report(WriteError(f"Error deleting job: {e}", original_error=e))
            return False

        logger.info(f"Deleted job application {job_id}")
        return True
