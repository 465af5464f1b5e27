"""Data models for job application tracking."""

from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class JobStatus(str, Enum):
    """Fixed set of application statuses, in display order."""

    APPLIED = "Applied"
    INTERVIEWING = "Interviewing"
    OFFER = "Offer"
    REJECTED = "Rejected"
    WISHLIST = "Wishlist"


STATUS_VALUES = [status.value for status in JobStatus]


def parse_applied_date(value: Any) -> Optional[date]:
    """Interpret a stored appliedDate as a calendar date, or None if unparsable.

    Store timestamps come back as timezone-aware datetimes; the calendar date
    is taken in UTC, matching how the date was written.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobApplication(_Document):
    """A tracked application as mirrored from the store."""

    id: str
    company: str = ""
    title: str = ""
    # Raw string so that unknown values survive and fall back at display time
    status: str = JobStatus.APPLIED.value
    applied_date: Optional[date] = None
    notes: str = ""
    posting_link: str = ""
    documents_used: str = ""
    created_at: Optional[datetime] = None

    @field_validator("applied_date", mode="before")
    @classmethod
    def _coerce_applied_date(cls, value: Any) -> Optional[date]:
        return parse_applied_date(value)

    @field_validator("company", "title", "status", "notes", "posting_link", "documents_used", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: Any) -> Optional[datetime]:
        return value if isinstance(value, datetime) else None

    @classmethod
    def from_document(cls, doc_id: str, fields: dict[str, Any]) -> "JobApplication":
        """Build from a raw store document; never fails on malformed fields."""
        known = {k: v for k, v in (fields or {}).items() if k in _WIRE_FIELDS}
        return cls.model_validate({**known, "id": doc_id})

    @property
    def applied_date_iso(self) -> Optional[str]:
        return self.applied_date.isoformat() if self.applied_date else None


_WIRE_FIELDS = {
    field.alias or name
    for name, field in JobApplication.model_fields.items()
    if name != "id"
}


class NewJobApplication(_Document):
    """Validated input of the add operation."""

    company: str = Field(min_length=1)
    title: str = Field(min_length=1)
    status: JobStatus = JobStatus.APPLIED
    applied_date: date
    notes: str = ""
    posting_link: str = ""
    documents_used: str = ""

    @field_validator("company", "title", mode="before")
    @classmethod
    def _strip_required(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> Any:
        return JobStatus.APPLIED if value in (None, "") else value

    @field_validator("applied_date", mode="before")
    @classmethod
    def _parse_date(cls, value: Union[str, date, datetime]) -> date:
        parsed = parse_applied_date(value)
        if parsed is None:
            raise ValueError(f"appliedDate is not a calendar date: {value!r}")
        return parsed

    @field_validator("notes", "posting_link", "documents_used", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    def to_document(self, created_at: datetime) -> dict[str, Any]:
        """Convert to the store payload: camelCase keys, native timestamps."""
        return {
            "company": self.company,
            "title": self.title,
            "status": self.status.value,
            "appliedDate": datetime.combine(self.applied_date, time.min, tzinfo=timezone.utc),
            "notes": self.notes,
            "postingLink": self.posting_link,
            "documentsUsed": self.documents_used,
            "createdAt": created_at,
        }
