"""Runtime settings for the vMix mirror, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from shared.logging.logger import get_logger
from shared.vmix.models import DEFAULT_HOST, DEFAULT_PORT

log = get_logger("shared.config.vmix")

MIN_POLL_INTERVAL = 0.5


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning(f"Invalid {name}={raw!r}; using {default}")
        return default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning(f"Invalid {name}={raw!r}; using {default}")
        return default


@dataclass
class VMixRuntimeConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    command_timeout: float = 5.0
    discovery_timeout: float = 3.0
    poll_interval: float = 2.0
    settings_path: str = "settings.json"
    asset_base_url: Optional[str] = None
    match_path: Optional[str] = None

    @classmethod
    def from_env(cls, *, base: Optional["VMixRuntimeConfig"] = None) -> "VMixRuntimeConfig":
        cfg = base or cls()

        cfg.host = os.getenv("VMIX_HOST") or cfg.host
        cfg.port = _int_env("VMIX_PORT", cfg.port)
        cfg.command_timeout = _float_env("VMIX_COMMAND_TIMEOUT", cfg.command_timeout)
        cfg.discovery_timeout = _float_env("VMIX_DISCOVERY_TIMEOUT", cfg.discovery_timeout)
        cfg.poll_interval = _float_env("VMIX_POLL_INTERVAL", cfg.poll_interval)

        cfg.settings_path = os.getenv("SCOREBOARD_SETTINGS_PATH") or cfg.settings_path
        cfg.asset_base_url = os.getenv("SCOREBOARD_ASSET_BASE_URL") or cfg.asset_base_url
        cfg.match_path = os.getenv("SCOREBOARD_MATCH_PATH") or cfg.match_path

        if cfg.poll_interval < MIN_POLL_INTERVAL:
            log.warning(f"VMIX_POLL_INTERVAL {cfg.poll_interval} below {MIN_POLL_INTERVAL}s; clamping")
            cfg.poll_interval = MIN_POLL_INTERVAL
        return cfg
