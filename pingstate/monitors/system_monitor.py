"""System ping probe (runs the platform's ping utility)"""
import logging
import platform
import re
import subprocess
from typing import List, Optional, Tuple
from .base import BaseMonitor, PingMethod, PingResult
from ..config import SYSTEM_PING_COUNT, settings

logger = logging.getLogger("PingState.SystemMonitor")

# Mac/Linux: "64 bytes from 1.1.1.1: icmp_seq=1 ttl=57 time=12.3 ms"
TIME_PATTERN = re.compile(r"time=(\d+(?:\.\d+)?)")
# Summary: "rtt min/avg/max/mdev = 11.9/13.5/14.7/1.2 ms"
AVG_PATTERN = re.compile(r"=\s*(\d+(?:\.\d+)?)/(\d+(?:\.\d+)?)/(\d+(?:\.\d+)?)")


def parse_ping_output(output: str) -> int:
    """
    Extract a latency in ms from ping output.

    Prefers the mean of every per-reply ``time=`` sample, then the middle
    field of a ``min/avg/max`` summary. Values are rounded with round().
    Returns -1 when neither pattern is present.
    """
    try:
        times = [float(t) for t in TIME_PATTERN.findall(output)]
        if times:
            return round(sum(times) / len(times))

        # Positional: assumes the summary is ordered min/avg/max
        avg_match = AVG_PATTERN.search(output)
        if avg_match:
            return round(float(avg_match.group(2)))
    except ValueError as e:
        logger.debug(f"Could not parse ping output: {e}")

    return -1


class SystemPingMonitor(BaseMonitor):
    """Shells out to ping and parses its output"""

    method = PingMethod.SYSTEM

    def __init__(self, executor=None, binary: Optional[str] = None):
        super().__init__(executor)
        self.binary = binary or settings.ping_binary
        self.platform = platform.system().lower()

    def build_command(self, host: str, timeout_ms: int) -> List[str]:
        if self.platform == "windows":
            # -n count, -w per-reply timeout in ms
            return [self.binary, "-n", str(SYSTEM_PING_COUNT), "-w", str(timeout_ms), host]
        # -c count, -W per-reply timeout in seconds
        wait_seconds = max(1, timeout_ms // 1000)
        return [self.binary, "-c", str(SYSTEM_PING_COUNT), "-W", str(wait_seconds), host]

    async def check(self, host: str, port: int, timeout_ms: int) -> PingResult:
        cmd = self.build_command(host, timeout_ms)

        try:
            returncode, output = await self.run_blocking(self._run, cmd, timeout_ms / 1000)
        except subprocess.TimeoutExpired:
            logger.debug(f"System ping timed out for {host}")
            return PingResult.failure(self.method, "System ping timeout")
        except Exception as e:
            logger.debug(f"System ping failed for {host}: {e}")
            return PingResult.failure(self.method, f"System ping failed: {e}")

        if returncode != 0:
            return PingResult.failure(self.method, f"System ping failed with exit code {returncode}")

        latency = parse_ping_output(output)
        if latency > 0:
            return PingResult(success=True, latency=latency, method=self.method)
        return PingResult(success=False, latency=-1, method=self.method)

    @staticmethod
    def _run(cmd: List[str], timeout: float) -> Tuple[int, str]:
        """Blocking run; kills and reaps the process when it overruns"""
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
            text=True,
        )
        try:
            output, _ = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.communicate()
            raise
        return proc.returncode, output or ""
