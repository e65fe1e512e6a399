"""Base classes for probe strategies"""
import asyncio
import socket
import time
from concurrent.futures import Executor
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, Tuple


class PingMethod(str, Enum):
    ICMP = "icmp"
    TCP = "tcp"
    SYSTEM = "system"
    NETWORK_CHECK = "network_check"
    EXCEPTION = "exception"
    NO_METHODS = "no_methods"
    CONTINUOUS = "continuous"


def _now_ms() -> int:
    return int(time.time() * 1000)


def resolve_address(host: str, port: int = 0) -> Tuple[int, tuple]:
    """
    Blocking lookup of the first usable address for host.
    Returns (family, sockaddr); works for IPv4 and IPv6 names and literals.
    """
    infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    family, _, _, _, sockaddr = infos[0]
    return family, sockaddr


@dataclass(frozen=True)
class PingResult:
    """Standardized result from any probe strategy"""
    success: bool
    latency: int  # ms, -1 when not applicable
    method: PingMethod
    error: Optional[str] = None
    timestamp: int = field(default_factory=_now_ms)

    @classmethod
    def failure(cls, method: PingMethod, error: Optional[str]) -> "PingResult":
        return cls(success=False, latency=-1, method=method, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "latency": self.latency,
            "method": self.method.value,
            "error": self.error,
            "timestamp": self.timestamp,
        }


class BaseMonitor:
    """Base class for all probe strategies"""

    method: PingMethod

    def __init__(self, executor: Optional[Executor] = None):
        # None falls back to the loop's default executor
        self.executor = executor

    async def run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, func, *args)

    async def check(self, host: str, port: int, timeout_ms: int) -> PingResult:
        """
        Probe the given host.
        Returns PingResult with success/failure and latency; never raises.
        """
        raise NotImplementedError("Subclasses must implement check()")
