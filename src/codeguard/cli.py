"""
Command line entry point.

    codeguard init-db
    codeguard add-repo acme acme/api --branch main
    codeguard enqueue 1 [--upload KEY]
    codeguard status 7
    codeguard process-next
    codeguard worker [--poll-interval 30]
    codeguard serve [--host 127.0.0.1 --port 8000]
"""
from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from typing import Any, Optional

from .config import CodeGuardSettings, get_settings
from .constants import ExitCode, ScanType
from .errors import CodeGuardError, ConfigError
from .logging import ScanLogger
from .scan import ScanOrchestrator
from .scan.orchestrator import default_worker_id
from .store import JobStore, ResultStore, close_db, get_sessionmaker, init_db


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _stores(session_local, settings: CodeGuardSettings) -> tuple[JobStore, ResultStore]:
    jobs = JobStore(session_local, stale_minutes=settings.stale_job_minutes, lease_seconds=settings.lease_seconds)
    results = ResultStore(session_local, batch_size=settings.batch_size)
    return jobs, results


async def _run_worker(orchestrator: ScanOrchestrator, poll_interval: float) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Not available on Windows event loops; Ctrl+C still raises KeyboardInterrupt.
            pass
    orchestrator.logger.info("worker_started", poll_interval=poll_interval)
    await orchestrator.run_forever(poll_interval=poll_interval, stop=stop)
    orchestrator.logger.info("worker_stopped")


async def async_main(args: argparse.Namespace, settings: CodeGuardSettings) -> int:
    await init_db(settings)
    try:
        if args.command == "init-db":
            print(f"Database ready: {settings.database_url}")
            return ExitCode.SUCCESS

        jobs, results = _stores(await get_sessionmaker(), settings)

        if args.command == "add-repo":
            repository = await results.add_repository(args.company_id, args.full_name, args.branch)
            _print_json({"id": repository.id, "company_id": repository.company_id, "full_name": repository.full_name})
            return ExitCode.SUCCESS

        if args.command == "enqueue":
            scan_type = ScanType.UPLOAD if args.upload else ScanType.FULL
            job = await jobs.enqueue(args.repository_id, scan_type, args.upload)
            _print_json({"id": job.id, "status": job.status, "scan_type": job.scan_type})
            return ExitCode.SUCCESS

        if args.command == "status":
            _print_json(await jobs.get_status(args.job_id))
            return ExitCode.SUCCESS

        worker_id = args.worker_id or default_worker_id()
        orchestrator = ScanOrchestrator(jobs, results, settings, worker_id=worker_id, logger=ScanLogger(worker_id))

        if args.command == "process-next":
            outcome = await orchestrator.process_next_job()
            if outcome is None:
                print("No pending scan jobs")
                return ExitCode.IDLE
            _print_json(
                {
                    "job_id": outcome.job_id,
                    "status": outcome.status.value,
                    "error_message": outcome.error_message,
                    "summary": outcome.summary,
                }
            )
            return ExitCode.SUCCESS if outcome.error_message is None else ExitCode.ERROR

        if args.command == "worker":
            await _run_worker(orchestrator, args.poll_interval or settings.poll_interval_seconds)
            return ExitCode.SUCCESS

        raise CodeGuardError(f"Unknown command: {args.command}")
    finally:
        await close_db()


def _serve(host: str, port: int) -> int:
    import uvicorn

    uvicorn.run("codeguard.api:app", host=host, port=port)
    return ExitCode.SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="codeguard", description="Repository scan pipeline")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the database schema")

    add_repo = commands.add_parser("add-repo", help="Register a repository to scan")
    add_repo.add_argument("company_id")
    add_repo.add_argument("full_name", help="owner/name on the code host")
    add_repo.add_argument("--branch", default="main", help="Branch to scan (default: main)")

    enqueue = commands.add_parser("enqueue", help="Queue a scan for a repository")
    enqueue.add_argument("repository_id", type=int)
    enqueue.add_argument("--upload", metavar="STORAGE_KEY", help="Scan an uploaded archive instead of the code host")

    status = commands.add_parser("status", help="Show a scan job's status and progress")
    status.add_argument("job_id", type=int)

    for name, help_text in (
        ("process-next", "Claim and process the oldest pending job"),
        ("worker", "Process jobs until interrupted"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("--worker-id", help="Lease owner name (default: host name plus a random suffix)")
        if name == "worker":
            command.add_argument("--poll-interval", type=float, help="Seconds to sleep when the queue is empty")

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return int(exc.exit_code)

    if args.command == "serve":
        return _serve(args.host, args.port)

    try:
        return int(asyncio.run(async_main(args, settings)))
    except CodeGuardError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return int(exc.exit_code)
    except KeyboardInterrupt:
        return ExitCode.SUCCESS


if __name__ == "__main__":
    raise SystemExit(main())
