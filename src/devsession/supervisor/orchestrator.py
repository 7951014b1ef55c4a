"""Session orchestrator: sequences startup and links the two lifetimes."""

from __future__ import annotations

import asyncio
import logging

from devsession.shared.enums import ProcessRole, SessionExitCode, SessionOutcome
from devsession.shared.exceptions import AllocationError, ReadinessTimeout, SpawnError, UnexpectedExit
from devsession.shared.models import ProcessSpec, ReadinessTarget, SessionReport
from devsession.supervisor.interfaces import PortAllocator, ProcessSupervisor, ReadinessWaiter
from devsession.supervisor.process import ExitCallback, ProcessHandle
from devsession.supervisor.session import Session

logger = logging.getLogger(__name__)


class _StopRequested(Exception):
    """Operator asked the session to end."""


def mirror_exit_code(code: int | None) -> int:
    """Map a child's exit code onto this process's exit code."""
    if code is None:
        return SessionExitCode.UNEXPECTED_EXIT
    if code < 0:
        # killed by signal -code
        return 128 - code
    return code


class SessionOrchestrator:
    """Allocate a port, start the asset server, wait for it, start the shell host.

    Once both run, whichever exits first takes the other down with it. Every
    failure is turned into a :class:`SessionReport`; ``run`` does not raise
    for session-level errors and never leaves a child running on return.
    """

    def __init__(
        self,
        *,
        allocator: PortAllocator,
        waiter: ReadinessWaiter,
        supervisor: ProcessSupervisor,
        asset_server: ProcessSpec,
        shell_host: ProcessSpec,
        scheme: str = "http",
        host: str = "localhost",
        port_env_var: str = "PORT",
        start_url_env_var: str = "ELECTRON_START_URL",
        readiness_timeout_seconds: float = 30.0,
        readiness_poll_interval_seconds: float = 0.25,
        shutdown_grace_seconds: float = 5.0,
    ) -> None:
        self._allocator = allocator
        self._waiter = waiter
        self._supervisor = supervisor
        self._asset_spec = asset_server
        self._shell_spec = shell_host
        self._scheme = scheme
        self._host = host
        self._port_env_var = port_env_var
        self._start_url_env_var = start_url_env_var
        self._readiness_timeout = readiness_timeout_seconds
        self._poll_interval = readiness_poll_interval_seconds
        self._grace = shutdown_grace_seconds
        self._stop_requested = asyncio.Event()
        self.session: Session | None = None

    def request_stop(self) -> None:
        """Ask a running session to shut both processes down."""
        logger.info("stop requested")
        self._stop_requested.set()

    async def run(self) -> SessionReport:
        """Drive one session to completion and report how it ended."""
        session = Session(readiness_timeout_seconds=self._readiness_timeout)
        self.session = session
        try:
            report = await self._run(session)
        finally:
            await self._teardown()

        logger.info(
            "session finished: outcome=%s exit_code=%d asset_server=%s shell_host=%s",
            report.outcome.value,
            report.exit_code,
            report.asset_server_exit_code,
            report.shell_host_exit_code,
        )
        return report

    async def _run(self, session: Session) -> SessionReport:
        # 1. Port
        try:
            port = await self._allocator.allocate()
        except AllocationError as exc:
            logger.error("session aborted at port allocation: %s", exc)
            return self._report(session, SessionOutcome.ALLOCATION_FAILED, SessionExitCode.ALLOCATION_FAILED, exc)
        url = f"{self._scheme}://{self._host}:{port}"
        session.bind_port(port, url)
        logger.info("allocated port %d (start url %s)", port, url)

        # 2. Asset server
        asset_spec = self._asset_spec.render(port=port, url=url, env={self._port_env_var: str(port)})
        try:
            session.asset_server = await self._spawn(asset_spec)
        except SpawnError as exc:
            logger.error("session aborted spawning asset server (%s): %s", exc.command, exc)
            return self._report(session, SessionOutcome.SPAWN_FAILED, SessionExitCode.SPAWN_FAILED, exc)

        # 3. Readiness, raced against the asset server exiting
        try:
            await self._await_readiness(url, session.asset_server)
        except ReadinessTimeout as exc:
            logger.error("session aborted: asset server never became ready: %s", exc)
            await self._stop(session.asset_server)
            return self._report(session, SessionOutcome.READINESS_TIMEOUT, SessionExitCode.READINESS_TIMEOUT, exc)
        except UnexpectedExit as exc:
            logger.error("session aborted while waiting for readiness: %s", exc)
            code = mirror_exit_code(exc.exit_code) or SessionExitCode.UNEXPECTED_EXIT
            return self._report(
                session, SessionOutcome.UNEXPECTED_EXIT, code, exc, trigger=ProcessRole.ASSET_SERVER
            )
        except _StopRequested:
            return await self._interrupt(session)

        # 4. Shell host
        shell_spec = self._shell_spec.render(port=port, url=url, env={self._start_url_env_var: url})
        try:
            session.shell_host = await self._spawn(shell_spec)
        except SpawnError as exc:
            logger.error("session aborted spawning shell host (%s): %s", exc.command, exc)
            await self._stop(session.asset_server)
            return self._report(session, SessionOutcome.SPAWN_FAILED, SessionExitCode.SPAWN_FAILED, exc)

        # 5. Linked lifetime
        return await self._supervise(session, session.asset_server, session.shell_host)

    async def _spawn(self, spec: ProcessSpec) -> ProcessHandle:
        return await self._supervisor.spawn(spec.command, spec.args, spec.env_overlay, role=spec.role)

    async def _await_readiness(self, url: str, asset_server: ProcessHandle) -> None:
        target = ReadinessTarget(
            url=url,
            timeout_seconds=self._readiness_timeout,
            poll_interval_seconds=self._poll_interval,
        )
        ready = asyncio.create_task(self._waiter.wait_until_ready(target), name="readiness")
        exited = asyncio.create_task(self._supervisor.wait(asset_server), name="asset-server-exit")
        stopped = asyncio.create_task(self._stop_requested.wait(), name="stop-requested")
        tasks = (ready, exited, stopped)
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        if exited in done:
            raise UnexpectedExit(ProcessRole.ASSET_SERVER.value, exited.result())
        if stopped in done:
            raise _StopRequested
        ready.result()
        logger.info("asset server ready at %s", url)

    async def _supervise(
        self, session: Session, asset_server: ProcessHandle, shell_host: ProcessHandle
    ) -> SessionReport:
        loop = asyncio.get_running_loop()
        first_exit: asyncio.Future[tuple[ProcessRole, int | None]] = loop.create_future()

        def _observer(role: ProcessRole) -> ExitCallback:
            def _on_exit(code: int | None) -> None:
                if not first_exit.done():
                    first_exit.set_result((role, code))

            return _on_exit

        self._supervisor.on_exit(asset_server, _observer(ProcessRole.ASSET_SERVER))
        self._supervisor.on_exit(shell_host, _observer(ProcessRole.SHELL_HOST))

        stopped = asyncio.create_task(self._stop_requested.wait(), name="stop-requested")
        try:
            await asyncio.wait((first_exit, stopped), return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not stopped.done():
                stopped.cancel()
            if not first_exit.done():
                first_exit.cancel()

        if first_exit.cancelled():
            return await self._interrupt(session)

        role, code = first_exit.result()
        other = session.other(role)
        logger.info("%s exited with code %s; stopping %s", role.value, code, other.role.value if other else "-")
        await self._stop(other)

        if code == 0:
            return self._report(session, SessionOutcome.COMPLETED, SessionExitCode.OK, trigger=role)
        exc = UnexpectedExit(role.value, code)
        logger.warning("linked shutdown: %s", exc)
        return self._report(session, SessionOutcome.UNEXPECTED_EXIT, mirror_exit_code(code), exc, trigger=role)

    async def _interrupt(self, session: Session) -> SessionReport:
        logger.warning("session interrupted; stopping children")
        await self._stop(session.shell_host)
        await self._stop(session.asset_server)
        return self._report(session, SessionOutcome.INTERRUPTED, SessionExitCode.INTERRUPTED)

    async def _stop(self, handle: ProcessHandle | None) -> None:
        if handle is None or handle.exited:
            return
        await self._supervisor.stop(handle, grace_seconds=self._grace)

    async def _teardown(self) -> None:
        # shell host first, it depends on the asset server
        for handle in reversed(self._supervisor.running()):
            try:
                await self._stop(handle)
            except Exception as exc:  # pragma: no cover - defensive cleanup log
                logger.error("failed to stop %s (pid=%s): %s", handle.role.value, handle.pid, exc)

    def _report(
        self,
        session: Session,
        outcome: SessionOutcome,
        exit_code: int,
        error: Exception | None = None,
        *,
        trigger: ProcessRole | None = None,
    ) -> SessionReport:
        return SessionReport(
            outcome=outcome,
            exit_code=int(exit_code),
            port=session.port,
            url=session.url,
            trigger=trigger,
            asset_server_exit_code=session.asset_server.exit_code if session.asset_server else None,
            shell_host_exit_code=session.shell_host.exit_code if session.shell_host else None,
            error_message=str(error) if error is not None else None,
        )
