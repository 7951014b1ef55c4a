"""Command-line entry point: ``devsession start`` / ``devsession check``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from devsession.config import Settings, get_settings
from devsession.shared.enums import Profile
from devsession.shared.models import SessionReport
from devsession.shared.result import Err
from devsession.supervisor.check import check_installation
from devsession.supervisor.orchestrator import SessionOrchestrator
from devsession.supervisor.ports import SocketPortAllocator
from devsession.supervisor.process import AsyncioProcessSupervisor
from devsession.supervisor.profiles import build_launch_specs, resolve_profile
from devsession.supervisor.readiness import HttpReadinessWaiter

logger = logging.getLogger(__name__)


def build_orchestrator(settings: Settings, profile: Profile | None = None) -> SessionOrchestrator:
    """Wire the real allocator, waiter and supervisor from settings."""
    asset_server, shell_host = build_launch_specs(settings, profile)
    return SessionOrchestrator(
        allocator=SocketPortAllocator(
            host=settings.allocation_host,
            timeout=settings.allocation_timeout_seconds,
        ),
        waiter=HttpReadinessWaiter(),
        supervisor=AsyncioProcessSupervisor(),
        asset_server=asset_server,
        shell_host=shell_host,
        scheme=settings.scheme,
        host=settings.host,
        port_env_var=settings.port_env_var,
        start_url_env_var=settings.start_url_env_var,
        readiness_timeout_seconds=settings.readiness_timeout_seconds,
        readiness_poll_interval_seconds=settings.readiness_poll_interval_seconds,
        shutdown_grace_seconds=settings.shutdown_grace_seconds,
    )


async def run_from_settings(settings: Settings, profile: Profile | None = None) -> SessionReport:
    """Run one session, routing SIGINT/SIGTERM into a clean linked shutdown."""
    orchestrator = build_orchestrator(settings, profile)
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, orchestrator.request_stop)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):  # pragma: no cover - non-unix loops
            logger.debug("cannot install handler for %s", sig.name)
    try:
        return await orchestrator.run()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devsession",
        description="Run the UI asset server and desktop shell together for local development.",
    )
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    start = commands.add_parser("start", help="start the asset server and shell host")
    start.add_argument("--profile", choices=[p.value for p in Profile], help="bundler to serve the UI with")

    check = commands.add_parser("check", help="check the required executables are installed")
    check.add_argument("--profile", choices=[p.value for p in Profile], help="bundler to check for")
    return parser


def _profile_arg(args: argparse.Namespace, settings: Settings) -> Profile:
    return resolve_profile(args.profile or settings.profile)


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``devsession`` and ``python -m devsession``."""
    args = _parser().parse_args(argv)
    settings = get_settings()
    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        profile = _profile_arg(args, settings)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    if args.command == "check":
        results = check_installation(settings, profile)
        return 1 if any(isinstance(r, Err) for r in results.values()) else 0

    report = asyncio.run(run_from_settings(settings, profile))
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
