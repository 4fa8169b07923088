from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("SLO_DB_PATH", "slo.db")
    project_name: str = os.getenv("SLO_PROJECT_NAME", "slo")

    # Completion wait. 0 means no deadline; cancellation is then up to the caller.
    wait_timeout_s: int = _env_int("SLO_WAIT_TIMEOUT_S", 0)
    wait_poll_s: int = _env_int("SLO_WAIT_POLL_S", 1)

    # How many times `slo up` reloads the deployment after a restart request.
    max_restarts: int = _env_int("SLO_MAX_RESTARTS", 3)

    # Pull images that are not in the local store before creating containers.
    pull_missing: bool = _env_bool("SLO_PULL_MISSING", True)


settings = Settings()
