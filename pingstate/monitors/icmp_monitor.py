"""ICMP reachability probe"""
import asyncio
import logging
from typing import List, Optional
from ping3 import ping
from .base import BaseMonitor, PingMethod, PingResult, resolve_address
from ..config import PING_COUNT, ICMP_MAX_ATTEMPTS, ICMP_PACING_MS

logger = logging.getLogger("PingState.ICMPMonitor")


class ICMPMonitor(BaseMonitor):
    """ICMP echo probe built on ping3"""

    method = PingMethod.ICMP

    async def check(self, host: str, port: int, timeout_ms: int) -> PingResult:
        """
        Resolve the host, then send up to three echo requests.

        Args:
            host: Hostname or IP address
            port: Unused, ICMP has no ports
            timeout_ms: Budget shared by all attempts

        Returns:
            PingResult whose latency is the mean of the successful attempts
        """
        try:
            _, sockaddr = await self.run_blocking(resolve_address, host)
            address = sockaddr[0]
            latencies = await self.ping_address(address, timeout_ms)

            if not latencies:
                return PingResult.failure(self.method, "Host not reachable via ICMP")

            return PingResult(
                success=True,
                latency=sum(latencies) // len(latencies),
                method=self.method,
            )
        except Exception as e:
            logger.debug(f"ICMP check failed for {host}: {e}")
            return PingResult.failure(self.method, f"ICMP ping failed: {e}")

    async def ping_address(self, address: str, timeout_ms: int) -> List[int]:
        """
        Run the paced attempts against a resolved address.

        Returns:
            Integer latencies (ms) of the attempts that got a reply
        """
        count = min(PING_COUNT, ICMP_MAX_ATTEMPTS)
        attempt_timeout = (timeout_ms // count) / 1000
        latencies = []

        for attempt in range(count):
            delay = await self._attempt(address, attempt_timeout)
            if delay is not None:
                latencies.append(int(delay))

            if attempt < count - 1:
                await asyncio.sleep(ICMP_PACING_MS / 1000)

        return latencies

    async def _attempt(self, address: str, timeout: float) -> Optional[float]:
        try:
            # ping3 returns ms here, None on timeout, or False on error
            delay = await self.run_blocking(lambda: ping(address, timeout=timeout, unit="ms"))
        except Exception as e:
            logger.debug(f"Ping error for {address}: {e}")
            return None

        if delay is None or delay is False:
            logger.debug(f"Ping returned {delay} for {address}")
            return None
        return delay
