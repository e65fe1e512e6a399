"""Probe defaults and environment-driven settings"""
import os
import logging
from dataclasses import dataclass

logger = logging.getLogger("PingState.Config")

DEFAULT_PORT = 80
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_INTERVAL_MS = 5000
TCP_TIMEOUT_MS = 3000

# ICMP attempts are min(PING_COUNT, ICMP_MAX_ATTEMPTS)
PING_COUNT = 4
ICMP_MAX_ATTEMPTS = 3
ICMP_PACING_MS = 100

SYSTEM_PING_COUNT = 2


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, defaulting to {default}")
        return default


@dataclass
class Settings:
    max_workers: int = 32
    probe_grace_ms: int = 1000
    connectivity_target: str = "8.8.8.8"
    ping_binary: str = "ping"
    event_buffer: int = 500
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            max_workers=max(1, _env_int("PINGSTATE_MAX_WORKERS", 32)),
            probe_grace_ms=max(0, _env_int("PINGSTATE_PROBE_GRACE_MS", 1000)),
            connectivity_target=os.getenv("PINGSTATE_CONNECTIVITY_TARGET", "8.8.8.8"),
            ping_binary=os.getenv("PINGSTATE_PING_BINARY", "ping"),
            event_buffer=max(1, _env_int("PINGSTATE_EVENT_BUFFER", 500)),
            log_level=os.getenv("PINGSTATE_LOG_LEVEL", "INFO").upper(),
        )


settings = Settings.from_env()
