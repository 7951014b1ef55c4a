"""Centralised configuration via Pydantic Settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Development-session configuration loaded from environment variables."""

    model_config = {"env_prefix": "DEVSESSION_", "frozen": True}

    # Launch profile
    # Profiles:
    # - rsbuild: `rsbuild dev` + electron loading src/electron-main/main.ts through tsx
    # - parcel: `parcel ./src/index.html` + electron loading main.js
    profile: str = "rsbuild"
    bin_dir: str = "./node_modules/.bin"
    # Leave blank to resolve the executable from bin_dir and the profile.
    asset_server_command: str = ""
    shell_host_command: str = ""

    # Start URL handed to the shell host
    scheme: str = "http"
    host: str = "localhost"
    port_env_var: str = "PORT"
    start_url_env_var: str = "ELECTRON_START_URL"
    dev_flag: str = "--start-dev"

    # Port allocation
    allocation_host: str = "127.0.0.1"
    allocation_timeout_seconds: float = 2.0

    # Readiness
    readiness_timeout_seconds: float = 30.0
    readiness_poll_interval_seconds: float = 0.25

    # Shutdown
    shutdown_grace_seconds: float = 5.0

    # Installation check
    electron_path_file: str = "node_modules/electron/path.txt"

    log_level: str = "INFO"


def get_settings() -> Settings:
    """Factory, patched out in tests."""
    return Settings()
