"""Command-line entry point for the job application tracker."""

import argparse
import logging
import sys
import threading
import time
from datetime import date
from pathlib import Path
from typing import Optional

from .auth import Session, bootstrap
from .commands import ApplicationCommands
from .config import get_config, load_config
from .display import render_list
from .errors import ConfigurationError
from .mirror import LiveCollectionMirror
from .models import STATUS_VALUES, JobStatus

LOG_DIR = Path(__file__).parent.parent / "logs"
SNAPSHOT_WAIT_SECONDS = 30


def setup_logging() -> None:
    """Configure logging for the application."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / "app.log"

    config = get_config()
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stderr),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jobtracker", description="Job Application Tracker")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("whoami", help="Show the signed-in user ID")

    list_cmd = sub.add_parser("list", help="Show tracked applications")
    list_cmd.add_argument("--color", action="store_true", help="Color statuses")

    watch_cmd = sub.add_parser("watch", help="Show applications and redraw on every change")
    watch_cmd.add_argument("--color", action="store_true", help="Color statuses")

    add_cmd = sub.add_parser("add", help="Add a new application")
    add_cmd.add_argument("--company", required=True)
    add_cmd.add_argument("--title", required=True)
    add_cmd.add_argument("--status", choices=STATUS_VALUES, default=JobStatus.APPLIED.value)
    add_cmd.add_argument("--date", dest="applied_date", default=date.today().isoformat(),
                         help="Date applied (YYYY-MM-DD), defaults to today")
    add_cmd.add_argument("--notes", default="")
    add_cmd.add_argument("--link", dest="posting_link", default="")
    add_cmd.add_argument("--docs", dest="documents_used", default="",
                         help="Documents used, e.g. 'SDE Resume v1.2, Custom CL'")

    status_cmd = sub.add_parser("status", help="Change the status of an application")
    status_cmd.add_argument("job_id")
    status_cmd.add_argument("new_status", choices=STATUS_VALUES)

    delete_cmd = sub.add_parser("delete", help="Delete an application")
    delete_cmd.add_argument("job_id")
    delete_cmd.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    return parser


def confirm_delete(job_id: str) -> bool:
    answer = input(f"Are you sure you want to delete job application {job_id}? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def wait_for_snapshot(mirror: LiveCollectionMirror, timeout: float = SNAPSHOT_WAIT_SECONDS) -> bool:
    """Block until the mirror has applied a snapshot or given up; True on a snapshot."""
    deadline = time.monotonic() + timeout
    while mirror.loading and time.monotonic() < deadline:
        time.sleep(0.1)
    return not mirror.loading and mirror.last_error is None


def watch(mirror: LiveCollectionMirror, color: bool = False) -> None:
    """Print the list on every snapshot until interrupted."""
    changed = threading.Event()
    mirror.add_listener(lambda jobs: changed.set())
    if not mirror.loading:
        changed.set()

    while True:
        changed.wait()
        changed.clear()
        print("\033[2J\033[H" + render_list(mirror.jobs, color=color), flush=True)


def run_command(args: argparse.Namespace, session: Session) -> int:
    logger = logging.getLogger(__name__)

    if not session.ready:
        logger.error("No signed-in user; nothing to do")
        return 1

    if args.command == "whoami":
        print(session.user_id)
        return 0

    commands = ApplicationCommands(session)

    if args.command == "add":
        job_id = commands.add_application(
            company=args.company,
            title=args.title,
            status=args.status,
            applied_date=args.applied_date,
            notes=args.notes,
            posting_link=args.posting_link,
            documents_used=args.documents_used,
        )
        if job_id is None:
            return 1
        print(job_id)
        return 0

    if args.command == "status":
        return 0 if commands.update_status(args.job_id, args.new_status) else 1

    if args.command == "delete":
        confirm = (lambda job_id: True) if args.yes else confirm_delete
        return 0 if commands.delete_application(args.job_id, confirm) else 1

    mirror = LiveCollectionMirror(session)
    mirror.start()
    try:
        if args.command == "watch":
            watch(mirror, color=args.color)
            return 0

        if not wait_for_snapshot(mirror):
            if mirror.last_error is None:
                logger.error("Timed out waiting for job applications")
            return 1
        print(render_list(mirror.jobs, color=args.color))
        return 0
    finally:
        mirror.stop()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
        setup_logging()
        session = bootstrap(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        return run_command(args, session)
    except KeyboardInterrupt:
        return 0
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
