"""Protocol interfaces for supervisor dependency injection."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol, runtime_checkable

from devsession.shared.enums import ProcessRole
from devsession.shared.models import ReadinessTarget
from devsession.supervisor.process import ExitCallback, ProcessHandle


@runtime_checkable
class PortAllocator(Protocol):
    """Protocol for obtaining an unused local port."""

    async def allocate(self) -> int:
        """Return a port that was free at the time of the call.

        Raises:
            AllocationError: If no port could be bound
        """
        ...


@runtime_checkable
class ReadinessWaiter(Protocol):
    """Protocol for waiting on a network endpoint."""

    async def wait_until_ready(self, target: ReadinessTarget) -> None:
        """Return once the target accepts connections.

        Args:
            target: Endpoint plus deadline

        Raises:
            ReadinessTimeout: If the deadline elapses first
        """
        ...


@runtime_checkable
class ProcessSupervisor(Protocol):
    """Protocol for owning child process lifecycles."""

    async def spawn(
        self,
        command: str,
        args: Sequence[str] = (),
        env_overlay: Mapping[str, str] | None = None,
        *,
        role: ProcessRole,
    ) -> ProcessHandle:
        """Start a child with inherited stdio.

        Raises:
            SpawnError: If the executable cannot be found or started
        """
        ...

    def on_exit(self, handle: ProcessHandle, callback: ExitCallback) -> None: ...

    def terminate(self, handle: ProcessHandle) -> None: ...

    async def wait(self, handle: ProcessHandle) -> int | None: ...

    async def stop(self, handle: ProcessHandle, *, grace_seconds: float = 5.0) -> int | None: ...

    def running(self) -> list[ProcessHandle]: ...
