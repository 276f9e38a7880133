"""
Documentation warehouse worker.

Polls the repository_jobs table, processes one job at a time through the
documentation pipeline and records the outcome on the job. SIGINT/SIGTERM
stop the loop once the current job has finished.

Usage:
    python worker.py                              # run the scheduler
    python worker.py --once                       # process at most one job
    python worker.py --submit https://github.com/org/repo.git --branch main
    python worker.py --submit /data/uploads/project --kind file
    python worker.py --resubmit <job-id>
    python worker.py --reset <job-id>
    python worker.py --list failed
"""

import argparse
import logging
import signal
import sys
from typing import Any, Optional, Sequence

from dotenv import load_dotenv

load_dotenv()

from docwarehouse.core.config import settings  # noqa: E402
from docwarehouse.core.logging_config import setup_logging  # noqa: E402
from docwarehouse.database import init_db, session_scope  # noqa: E402
from docwarehouse.models import JobStatus  # noqa: E402
from docwarehouse.services.job_service import JobService  # noqa: E402
from docwarehouse.services.llm_client import LiteLLMClient  # noqa: E402
from docwarehouse.services.pipeline import DocumentPipeline  # noqa: E402
from docwarehouse.services.warehouse_scheduler import WarehouseScheduler  # noqa: E402

logger = logging.getLogger("worker")

JOB_STATUSES = [JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED]


def build_scheduler() -> WarehouseScheduler:
    chat_client = LiteLLMClient.from_settings(settings.chat_model)
    analysis_client = LiteLLMClient.from_settings(settings.planning_model)
    pipeline = DocumentPipeline(chat_client, analysis_client)
    return WarehouseScheduler(pipeline)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Repository documentation worker")
    parser.add_argument("--once", action="store_true", help="Process at most one job, then exit")
    parser.add_argument("--submit", metavar="ADDRESS", help="Queue a repository (clone URL or directory)")
    parser.add_argument("--kind", choices=["git", "file"], default="git", help="Source kind for --submit")
    parser.add_argument("--branch", help="Branch for --submit")
    parser.add_argument("--git-username", help="Git username for --submit")
    parser.add_argument("--git-password", help="Git password or token for --submit")
    parser.add_argument("--resubmit", metavar="JOB_ID", help="Reset a failed job to pending")
    parser.add_argument("--reset", metavar="JOB_ID", help="Delete a job's generated state and queue it again")
    parser.add_argument(
        "--list", metavar="STATUS", choices=JOB_STATUSES,
        help="Print the jobs in the given status",
    )
    return parser.parse_args(argv)


def _run_admin_command(args: argparse.Namespace) -> bool:
    """Handle --submit/--resubmit/--reset/--list. Returns True if one was given."""
    if not (args.submit or args.resubmit or args.reset or args.list):
        return False

    with session_scope() as db:
        service = JobService(db)
        if args.submit:
            job = service.submit(
                args.submit,
                kind=args.kind,
                branch=args.branch,
                git_username=args.git_username,
                git_password=args.git_password,
            )
            print(job.id)
        if args.resubmit:
            service.resubmit(args.resubmit)
        if args.reset:
            service.reset(args.reset)
        if args.list:
            for job in service.list_jobs(args.list):
                print(f"{job.id}\t{job.kind}\t{job.address}\t{job.error or ''}")
    return True


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    setup_logging(settings.log_level, settings.log_format)
    init_db()

    if _run_admin_command(args):
        return 0

    scheduler = build_scheduler()

    def _handle_shutdown_signal(signum: int, frame: Any) -> None:
        logger.warning("Received %s, stopping after the current job", signal.Signals(signum).name)
        scheduler.stop()

    signal.signal(signal.SIGTERM, _handle_shutdown_signal)
    signal.signal(signal.SIGINT, _handle_shutdown_signal)

    if args.once:
        scheduler.run_once()
    else:
        scheduler.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
