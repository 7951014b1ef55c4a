"""Hierarchical exception types for the development session supervisor."""

from __future__ import annotations


class DevSessionError(Exception):
    """Base exception for all devsession errors."""


# ── Startup ─────────────────────────────────────────────────────


class AllocationError(DevSessionError):
    """No free local port could be obtained."""


class SpawnError(DevSessionError):
    """A child executable is missing or could not be started."""

    def __init__(self, message: str, *, command: str) -> None:
        super().__init__(message)
        self.command = command


class ReadinessTimeout(DevSessionError):
    """The awaited endpoint never accepted a connection before its deadline."""

    def __init__(self, url: str, *, elapsed: float, attempts: int) -> None:
        super().__init__(f"{url} not reachable after {elapsed:.1f}s ({attempts} attempts)")
        self.url = url
        self.elapsed = elapsed
        self.attempts = attempts


# ── Lifetime ────────────────────────────────────────────────────


class UnexpectedExit(DevSessionError):
    """A child process exited while it was still expected to run."""

    def __init__(self, role: str, exit_code: int | None) -> None:
        super().__init__(f"{role} exited unexpectedly with code {exit_code}")
        self.role = role
        self.exit_code = exit_code


class ProcessStateError(DevSessionError):
    """Illegal lifecycle transition on a process handle."""
