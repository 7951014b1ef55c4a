"""Runtime state for one development session."""

from __future__ import annotations

from dataclasses import dataclass

from devsession.shared.enums import ProcessRole
from devsession.supervisor.process import ProcessHandle


@dataclass(slots=True)
class Session:
    """Allocated port plus the two process handles attached as they spawn."""

    readiness_timeout_seconds: float
    port: int | None = None
    url: str | None = None
    asset_server: ProcessHandle | None = None
    shell_host: ProcessHandle | None = None

    def bind_port(self, port: int, url: str) -> None:
        """Fix the session's port; it never changes afterwards."""
        if self.port is not None:
            raise ValueError(f"session port already bound to {self.port}")
        if not 1 <= port <= 65535:
            raise ValueError(f"port out of range: {port}")
        self.port = port
        self.url = url

    def other(self, role: ProcessRole) -> ProcessHandle | None:
        return self.shell_host if role == ProcessRole.ASSET_SERVER else self.asset_server
