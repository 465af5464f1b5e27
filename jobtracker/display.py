"""Status styles and text rendering of job application cards."""

from typing import Iterable, NamedTuple, Optional

from .models import JobApplication, JobStatus


class StatusStyle(NamedTuple):
    """How a status badge is drawn in the browser and in the terminal."""

    color: str  # Streamlit markdown color name
    ansi: str


NEUTRAL_STYLE = StatusStyle("gray", "\033[90m")

STATUS_STYLES = {
    JobStatus.APPLIED.value: StatusStyle("blue", "\033[34m"),
    JobStatus.INTERVIEWING.value: StatusStyle("violet", "\033[35m"),
    JobStatus.OFFER.value: StatusStyle("green", "\033[32m"),
    JobStatus.REJECTED.value: StatusStyle("red", "\033[31m"),
    JobStatus.WISHLIST.value: StatusStyle("orange", "\033[33m"),
}

ANSI_RESET = "\033[0m"


def status_style(status: Optional[str]) -> StatusStyle:
    """Style for a status; anything unrecognized gets the neutral style."""
    return STATUS_STYLES.get(status, NEUTRAL_STYLE) if isinstance(status, str) else NEUTRAL_STYLE


def posting_url(link: str) -> Optional[str]:
    """Make a posting link clickable, assuming https when no scheme is given."""
    link = (link or "").strip()
    if not link:
        return None
    return link if link.startswith("http") else f"https://{link}"


def format_applied_date(job: JobApplication) -> str:
    return job.applied_date_iso or "N/A"


def render_card(job: JobApplication, color: bool = False) -> str:
    """Render one application as a block of text."""
    status = job.status
    if color:
        status = f"{status_style(job.status).ansi}{status}{ANSI_RESET}"

    lines = [
        f"{job.company}  [{status}]",
        f"  {job.title}",
        f"  Applied: {format_applied_date(job)}",
    ]
    if job.documents_used:
        lines.append(f"  Docs: {job.documents_used}")
    if job.notes:
        lines.append(f"  Notes: {job.notes}")

    url = posting_url(job.posting_link)
    lines.append(f"  Posting: {url}" if url else "  No link provided")
    lines.append(f"  id: {job.id}")
    return "\n".join(lines)


def render_list(jobs: Iterable[JobApplication], color: bool = False) -> str:
    """Render the whole list with a count header, or the empty state."""
    jobs = list(jobs)
    header = f"{len(jobs)} Applications Tracked"
    if not jobs:
        return f"{header}\n\nNo applications yet! Use 'add' to start tracking your search."
    cards = "\n\n".join(render_card(job, color=color) for job in jobs)
    return f"{header}\n\n{cards}"
