"""Frozen Pydantic models shared by all modules."""

from __future__ import annotations

from pydantic import BaseModel, Field

from devsession.shared.enums import ProcessRole, SessionExitCode, SessionOutcome


class ProcessSpec(BaseModel):
    """How to launch one child process.

    ``args`` may carry ``{port}`` and ``{url}`` placeholders which are filled
    from the session's allocated port by :meth:`render`.
    """

    model_config = {"frozen": True}

    role: ProcessRole
    command: str
    args: tuple[str, ...] = ()
    env_overlay: dict[str, str] = Field(default_factory=dict)

    def render(self, *, port: int, url: str, env: dict[str, str] | None = None) -> ProcessSpec:
        """Return a copy with placeholders substituted and ``env`` merged into the overlay."""
        args = tuple(arg.format(port=port, url=url) for arg in self.args)
        overlay = {**self.env_overlay, **(env or {})}
        return self.model_copy(update={"args": args, "env_overlay": overlay})


class ReadinessTarget(BaseModel):
    """An endpoint plus the deadline for it to become reachable."""

    model_config = {"frozen": True}

    url: str
    timeout_seconds: float = Field(default=30.0, gt=0)
    poll_interval_seconds: float = Field(default=0.25, gt=0, le=5)


class SessionReport(BaseModel):
    """Final account of one development session."""

    model_config = {"frozen": True}

    outcome: SessionOutcome
    exit_code: int = SessionExitCode.OK
    port: int | None = None
    url: str | None = None
    trigger: ProcessRole | None = None
    asset_server_exit_code: int | None = None
    shell_host_exit_code: int | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == SessionOutcome.COMPLETED and self.exit_code == 0
