"""Domain enumerations used across all modules."""

from __future__ import annotations

from enum import Enum, IntEnum, unique


@unique
class ProcessRole(str, Enum):
    """The two children of a development session."""

    ASSET_SERVER = "asset_server"
    SHELL_HOST = "shell_host"


@unique
class ProcessState(str, Enum):
    """Lifecycle states for a supervised child process."""

    STARTING = "starting"
    RUNNING = "running"
    EXITED = "exited"


@unique
class SessionOutcome(str, Enum):
    """How a session ended."""

    COMPLETED = "completed"
    ALLOCATION_FAILED = "allocation_failed"
    SPAWN_FAILED = "spawn_failed"
    READINESS_TIMEOUT = "readiness_timeout"
    UNEXPECTED_EXIT = "unexpected_exit"
    INTERRUPTED = "interrupted"


@unique
class SessionExitCode(IntEnum):
    """Process exit codes for outcomes that are not mirrored from a child."""

    OK = 0
    ALLOCATION_FAILED = 70
    SPAWN_FAILED = 71
    READINESS_TIMEOUT = 72
    UNEXPECTED_EXIT = 73
    INTERRUPTED = 130


@unique
class Profile(str, Enum):
    """Bundler used to serve the UI during development."""

    RSBUILD = "rsbuild"
    PARCEL = "parcel"
