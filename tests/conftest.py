"""Shared pytest fixtures for the devsession test suite."""

from __future__ import annotations

import sys
from collections.abc import Callable

import pytest

from devsession.config import Settings
from devsession.shared.enums import ProcessRole
from devsession.shared.models import ProcessSpec
from devsession.supervisor.process import AsyncioProcessSupervisor


@pytest.fixture()
def settings() -> Settings:
    """Return a Settings instance with test defaults."""
    return Settings(
        profile="rsbuild",
        bin_dir="/opt/frontend/node_modules/.bin",
        readiness_timeout_seconds=2.0,
        readiness_poll_interval_seconds=0.05,
        shutdown_grace_seconds=1.0,
        electron_path_file="",
    )


@pytest.fixture()
def supervisor() -> AsyncioProcessSupervisor:
    return AsyncioProcessSupervisor()


@pytest.fixture()
def python_spec() -> Callable[..., ProcessSpec]:
    """Factory for specs running ``sys.executable -c code``."""

    def _make(role: ProcessRole, code: str, *args: str) -> ProcessSpec:
        return ProcessSpec(role=role, command=sys.executable, args=("-c", code, *args))

    return _make
