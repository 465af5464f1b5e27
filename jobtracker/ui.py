"""Streamlit front end: application cards and an add form.

Run with ``streamlit run jobtracker/ui.py``. The page only ever renders the
mirror's current list; edits go through the command layer and come back via
the live subscription.
"""

import logging
from datetime import date

import streamlit as st

from jobtracker.auth import bootstrap
from jobtracker.commands import ApplicationCommands
from jobtracker.config import load_config
from jobtracker.display import format_applied_date, posting_url, status_style
from jobtracker.errors import ConfigurationError
from jobtracker.main import setup_logging
from jobtracker.mirror import LiveCollectionMirror
from jobtracker.models import STATUS_VALUES, JobApplication

logger = logging.getLogger(__name__)

REFRESH_SECONDS = 2
STALL_SECONDS = 15


@st.cache_resource
def tracker():
    """Bootstrap once per server process; the session and mirror outlive reruns."""
    config = load_config()
    setup_logging()
    session = bootstrap(config)
    mirror = LiveCollectionMirror(session)
    mirror.start()
    return session, mirror, ApplicationCommands(session)


def retry_sign_in(session, mirror: LiveCollectionMirror) -> None:
    """Drop the cached session and bootstrap again on the next run."""
    mirror.stop()
    session.close()
    tracker.clear()
    st.rerun()


@st.dialog("Add New Application", width="large")
def add_job_dialog(commands: ApplicationCommands) -> None:
    with st.form("add_job"):
        left, right = st.columns(2)
        company = left.text_input("Company", placeholder="Google")
        title = right.text_input("Job Title", placeholder="Software Engineer")
        status = left.selectbox("Status", STATUS_VALUES)
        applied_date = right.date_input("Date Applied", value=date.today())
        posting_link = left.text_input("Job Posting Link (URL)", placeholder="https://example.com/job-post")
        documents_used = right.text_input(
            "Documents Used (e.g., v3 Resume, AI Cover Letter)", placeholder="SDE Resume v1.2, Custom CL"
        )
        notes = st.text_area(
            "Notes (Optional)", placeholder="Recruiter contacted me, next step is the technical screen..."
        )
        submitted = st.form_submit_button("Save Application", type="primary")

    if submitted:
        job_id = commands.add_application(
            company=company,
            title=title,
            status=status,
            applied_date=applied_date,
            notes=notes,
            posting_link=posting_link,
            documents_used=documents_used,
        )
        if job_id is None:
            st.error(f"Could not save application: {commands.last_error}")
        else:
            st.rerun()


@st.dialog("Delete application")
def delete_job_dialog(commands: ApplicationCommands, job: JobApplication) -> None:
    st.write(f"Are you sure you want to delete **{job.company} - {job.title}**? This cannot be undone.")
    yes, no = st.columns(2)
    if yes.button("Delete", type="primary"):
        commands.delete_application(job.id, confirm=lambda job_id: True)
        st.rerun()
    if no.button("Cancel"):
        st.rerun()


def job_card(job: JobApplication, commands: ApplicationCommands) -> None:
    with st.container(border=True):
        style = status_style(job.status)
        st.markdown(f"### {job.company}")
        st.markdown(f"💼 {job.title} &nbsp; :{style.color}[**{job.status}**]")

        # Keyed on the mirrored status so a change made elsewhere resets the widget
        key = f"status-{job.id}-{job.status}"
        st.selectbox(
            "Status",
            STATUS_VALUES,
            index=STATUS_VALUES.index(job.status) if job.status in STATUS_VALUES else None,
            key=key,
            label_visibility="collapsed",
            on_change=lambda: commands.update_status(job.id, st.session_state[key]),
        )

        st.caption(f"📅 Applied: {format_applied_date(job)}")
        if job.documents_used:
            st.caption(f"📄 Docs: {job.documents_used}")
        if job.notes:
            st.markdown(f"_{job.notes}_")

        link, delete = st.columns(2)
        url = posting_url(job.posting_link)
        if url:
            link.link_button("View Posting", url)
        else:
            link.caption("No link provided")
        if delete.button("🗑 Delete", key=f"delete-{job.id}"):
            delete_job_dialog(commands, job)


@st.fragment(run_every=REFRESH_SECONDS)
def job_list(mirror: LiveCollectionMirror, commands: ApplicationCommands) -> None:
    if mirror.loading:
        waited = mirror.waiting_seconds()
        if waited > STALL_SECONDS:
            st.warning(
                f"No data from Firestore after {waited:.0f} seconds. "
                "Check your connection and the database rules, then reload the page."
            )
        else:
            st.info("Loading Application Data...")
        return
    if mirror.last_error is not None:
        st.warning(f"Live updates stopped: {mirror.last_error.message}")

    jobs = mirror.jobs
    st.subheader(f"{len(jobs)} Applications Tracked")
    if not jobs:
        st.info('No applications yet! Click "Add New Job" to start tracking your search.')
        return

    columns = st.columns(3)
    for i, job in enumerate(jobs):
        with columns[i % 3]:
            job_card(job, commands)


def main() -> None:
    st.set_page_config(page_title="Job Application Tracker", layout="wide")

    try:
        session, mirror, commands = tracker()
    except ConfigurationError as e:
        st.error(f"Configuration error: {e}")
        st.stop()

    st.title("Job Application Tracker")
    st.caption("Keep tabs on all your job hunting efforts. Data is saved in real-time.")
    st.caption(f"**User ID:** {session.user_id or 'not signed in'}")

    if not session.ready:
        st.error(f"Not signed in: {session.last_error}")
        if st.button("Retry sign-in"):
            retry_sign_in(session, mirror)
        st.stop()

    if st.button("➕ Add New Job", type="primary"):
        add_job_dialog(commands)

    job_list(mirror, commands)


main()
