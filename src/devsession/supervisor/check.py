"""Installation check for the executables a session depends on."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from devsession.config import Settings
from devsession.shared.enums import Profile
from devsession.shared.models import ProcessSpec
from devsession.shared.result import Err, Ok, Result
from devsession.supervisor.profiles import build_launch_specs

logger = logging.getLogger(__name__)


def check_executable(spec: ProcessSpec) -> Result[str]:
    """Resolve a launch command to an executable path."""
    command = spec.command
    if os.sep in command or (os.altsep and os.altsep in command):
        path = Path(command)
        if not path.is_file():
            return Err("missing", f"{spec.role.value}: {command} does not exist")
        if not os.access(path, os.X_OK):
            return Err("not_executable", f"{spec.role.value}: {command} is not executable")
        return Ok(str(path))

    found = shutil.which(command)
    if found is None:
        return Err("missing", f"{spec.role.value}: {command} not found on PATH")
    return Ok(found)


def check_electron_binary(path_file: str) -> Result[str]:
    """Electron's npm package records its downloaded binary in ``path.txt``."""
    path = Path(path_file)
    if not path.is_file():
        return Err(
            "electron_binary_missing",
            f"{path_file} missing; the electron binary download likely failed "
            "(retry the install or set ELECTRON_MIRROR)",
        )
    recorded = path.read_text(encoding="utf-8").strip()
    if not recorded:
        return Err("electron_binary_missing", f"{path_file} is empty")
    return Ok(recorded)


def check_installation(settings: Settings, profile: Profile | None = None) -> dict[str, Result[str]]:
    """Check every executable the given profile needs.

    Returns:
        Mapping of check name to its result; never raises for a failed check.
    """
    asset_server, shell_host = build_launch_specs(settings, profile)
    results: dict[str, Result[str]] = {
        asset_server.role.value: check_executable(asset_server),
        shell_host.role.value: check_executable(shell_host),
    }
    if settings.electron_path_file:
        results["electron_binary"] = check_electron_binary(settings.electron_path_file)

    for name, result in results.items():
        if isinstance(result, Ok):
            logger.info("✓ %s: %s", name, result.value)
        else:
            logger.error("✗ %s: %s", name, result.message)
    return results
