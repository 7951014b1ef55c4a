"""Launch specs for each supported bundler."""

from __future__ import annotations

import os

from devsession.config import Settings
from devsession.shared.enums import ProcessRole, Profile
from devsession.shared.models import ProcessSpec

# (asset server executable, asset server args, shell host args)
_PROFILES: dict[Profile, tuple[str, tuple[str, ...], tuple[str, ...]]] = {
    Profile.RSBUILD: (
        "rsbuild",
        ("dev", "--port", "{port}"),
        ("--require", "tsx", "src/electron-main/main.ts"),
    ),
    Profile.PARCEL: (
        "parcel",
        ("./src/index.html", "--dist-dir", "build", "--port", "{port}"),
        ("main.js",),
    ),
}

_SHELL_HOST_BIN = "electron"


def resolve_profile(name: str) -> Profile:
    """Parse a profile name, raising ``ValueError`` with the known choices."""
    try:
        return Profile(name.strip().lower())
    except ValueError as exc:
        choices = ", ".join(p.value for p in Profile)
        raise ValueError(f"unknown profile {name!r} (expected one of: {choices})") from exc


def build_launch_specs(settings: Settings, profile: Profile | None = None) -> tuple[ProcessSpec, ProcessSpec]:
    """Return the (asset server, shell host) specs for a profile.

    Port and URL are left as placeholders; the orchestrator renders them once
    the port is allocated.
    """
    profile = profile or resolve_profile(settings.profile)
    asset_bin, asset_args, shell_args = _PROFILES[profile]

    asset_server = ProcessSpec(
        role=ProcessRole.ASSET_SERVER,
        command=settings.asset_server_command or os.path.join(settings.bin_dir, asset_bin),
        args=asset_args,
    )
    shell_host = ProcessSpec(
        role=ProcessRole.SHELL_HOST,
        command=settings.shell_host_command or os.path.join(settings.bin_dir, _SHELL_HOST_BIN),
        args=(*shell_args, settings.dev_flag) if settings.dev_flag else shell_args,
    )
    return asset_server, shell_host
