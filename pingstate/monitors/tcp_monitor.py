"""TCP connect probe"""
import logging
import socket
import time
from .base import BaseMonitor, PingMethod, PingResult, resolve_address
from ..config import TCP_TIMEOUT_MS

logger = logging.getLogger("PingState.TCPMonitor")


class TCPMonitor(BaseMonitor):
    """Times a single TCP handshake"""

    method = PingMethod.TCP

    async def check(self, host: str, port: int, timeout_ms: int) -> PingResult:
        connect_timeout = min(timeout_ms, TCP_TIMEOUT_MS) / 1000

        try:
            latency = await self.run_blocking(self._connect, host, port, connect_timeout)
        except socket.timeout:
            return PingResult.failure(self.method, "TCP connection timeout")
        except ConnectionRefusedError:
            return PingResult.failure(self.method, "TCP connection refused")
        except Exception as e:
            logger.debug(f"TCP check failed for {host}:{port}: {e}")
            return PingResult.failure(self.method, f"TCP ping failed: {e}")

        return PingResult(success=True, latency=latency, method=self.method)

    @staticmethod
    def _connect(host: str, port: int, timeout: float) -> int:
        """Blocking connect; returns the handshake time in ms"""
        family, sockaddr = resolve_address(host, port)
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.settimeout(timeout)
            # Resolution is excluded from the measured time
            start = time.perf_counter()
            sock.connect(sockaddr)
            return int((time.perf_counter() - start) * 1000)
        finally:
            sock.close()
