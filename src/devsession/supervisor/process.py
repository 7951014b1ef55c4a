"""Child process lifecycle management on asyncio subprocesses."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from devsession.shared.enums import ProcessRole, ProcessState
from devsession.shared.exceptions import ProcessStateError, SpawnError

logger = logging.getLogger(__name__)

ExitCallback = Callable[[int | None], None]

_ALLOWED_TRANSITIONS: dict[ProcessState, frozenset[ProcessState]] = {
    ProcessState.STARTING: frozenset({ProcessState.RUNNING, ProcessState.EXITED}),
    ProcessState.RUNNING: frozenset({ProcessState.EXITED}),
    ProcessState.EXITED: frozenset(),
}


@dataclass(eq=False)
class ProcessHandle:
    """One spawned child. Mutated only by the supervisor that created it."""

    role: ProcessRole
    command: str
    args: tuple[str, ...]
    env_overlay: dict[str, str]
    pid: int | None = None
    state: ProcessState = ProcessState.STARTING
    exit_code: int | None = None
    _process: asyncio.subprocess.Process | None = field(default=None, repr=False)
    _exited: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    _callbacks: list[ExitCallback] = field(default_factory=list, repr=False)

    @property
    def running(self) -> bool:
        return self.state == ProcessState.RUNNING

    @property
    def exited(self) -> bool:
        return self.state == ProcessState.EXITED

    def _transition(self, new: ProcessState) -> None:
        if new not in _ALLOWED_TRANSITIONS[self.state]:
            raise ProcessStateError(f"{self.role.value}: illegal transition {self.state.value} -> {new.value}")
        self.state = new


class AsyncioProcessSupervisor:
    """Implementation of the ``ProcessSupervisor`` protocol.

    Each spawned child gets a watcher task that awaits its exit, records the
    exit code and fires the registered one-shot observers.
    """

    def __init__(self) -> None:
        self._handles: list[ProcessHandle] = []
        self._watchers: set[asyncio.Task[None]] = set()

    async def spawn(
        self,
        command: str,
        args: Sequence[str] = (),
        env_overlay: Mapping[str, str] | None = None,
        *,
        role: ProcessRole,
    ) -> ProcessHandle:
        """Start a child that inherits this process's standard streams.

        Args:
            command: Executable path or name resolved through ``PATH``.
            args: Arguments passed after the command.
            env_overlay: Variables merged over the parent environment.
            role: Which half of the session this child plays.

        Returns:
            A handle in the RUNNING state.

        Raises:
            SpawnError: If the executable is missing or cannot be started.
        """
        overlay = dict(env_overlay or {})
        handle = ProcessHandle(role=role, command=command, args=tuple(args), env_overlay=overlay)
        env = {**os.environ, **overlay}

        logger.info("spawning %s: %s %s", role.value, command, " ".join(handle.args))
        try:
            proc = await asyncio.create_subprocess_exec(command, *handle.args, env=env)
        except FileNotFoundError as exc:
            handle._transition(ProcessState.EXITED)
            raise SpawnError(f"{role.value} executable not found: {command}", command=command) from exc
        except PermissionError as exc:
            handle._transition(ProcessState.EXITED)
            raise SpawnError(f"{role.value} executable not permitted: {command}", command=command) from exc
        except OSError as exc:
            handle._transition(ProcessState.EXITED)
            raise SpawnError(f"failed to start {role.value} ({command}): {exc}", command=command) from exc

        handle._process = proc
        handle.pid = proc.pid
        handle._transition(ProcessState.RUNNING)
        self._handles.append(handle)
        logger.info("%s running (pid=%d)", role.value, proc.pid)

        watcher = asyncio.create_task(self._watch(handle, proc), name=f"watch-{role.value}-{proc.pid}")
        self._watchers.add(watcher)
        watcher.add_done_callback(self._watchers.discard)
        return handle

    def on_exit(self, handle: ProcessHandle, callback: ExitCallback) -> None:
        """Register a one-shot observer called with the exit code.

        If the process has already exited the callback is scheduled right away.
        """
        if handle.exited:
            asyncio.get_running_loop().call_soon(callback, handle.exit_code)
            return
        handle._callbacks.append(callback)

    def terminate(self, handle: ProcessHandle) -> None:
        """Send SIGTERM to a running child; no-op once it has exited."""
        proc = handle._process
        if not handle.running or proc is None:
            return
        try:
            proc.terminate()
        except ProcessLookupError:
            # exited but not yet reaped by the watcher
            logger.debug("%s (pid=%s) already gone on terminate", handle.role.value, handle.pid)
            return
        logger.info("sent terminate to %s (pid=%s)", handle.role.value, handle.pid)

    async def wait(self, handle: ProcessHandle) -> int | None:
        """Block until the child has exited and return its exit code."""
        await handle._exited.wait()
        return handle.exit_code

    async def stop(self, handle: ProcessHandle, *, grace_seconds: float = 5.0) -> int | None:
        """Terminate, then kill if the child outlives the grace period."""
        if handle.exited:
            return handle.exit_code
        self.terminate(handle)
        try:
            return await asyncio.wait_for(self.wait(handle), timeout=grace_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "%s (pid=%s) ignored terminate for %.1fs, killing",
                handle.role.value,
                handle.pid,
                grace_seconds,
            )

        proc = handle._process
        if proc is not None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        return await self.wait(handle)

    def running(self) -> list[ProcessHandle]:
        """Handles that have not reached EXITED yet."""
        return [h for h in self._handles if not h.exited]

    async def _watch(self, handle: ProcessHandle, proc: asyncio.subprocess.Process) -> None:
        code = await proc.wait()

        handle.exit_code = code
        handle._transition(ProcessState.EXITED)
        handle._exited.set()
        logger.info("%s (pid=%s) exited with code %s", handle.role.value, handle.pid, code)

        callbacks, handle._callbacks = handle._callbacks, []
        for callback in callbacks:
            try:
                callback(code)
            except Exception:
                logger.exception("exit observer for %s failed", handle.role.value)
