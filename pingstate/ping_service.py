"""
Ping Service - runs every probe strategy against a host and keeps the best result.
Also drives batch probes and repeating (continuous) probes.
"""
import asyncio
import inspect
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple
from .config import DEFAULT_PORT, DEFAULT_TIMEOUT_MS, DEFAULT_INTERVAL_MS, Settings, settings as default_settings
from .connectivity import is_network_available
from .monitors import BaseMonitor, PingMethod, PingResult, ICMPMonitor, TCPMonitor, SystemPingMonitor

logger = logging.getLogger("PingState.PingService")

ResultCallback = Callable[[PingResult], Any]


class ServiceClosedError(RuntimeError):
    """Raised when work is requested after cleanup()"""


class PingService:
    def __init__(self, settings: Optional[Settings] = None, network_check: Optional[Callable[[], bool]] = None):
        self.settings = settings or default_settings
        self.network_check = network_check or is_network_available

        # Dedicated pool for DNS, connects, ping3 and process waits
        self.executor = ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix="pingstate-io",
        )
        self.icmp_monitor = ICMPMonitor(self.executor)
        self.tcp_monitor = TCPMonitor(self.executor)
        self.system_monitor = SystemPingMonitor(self.executor, binary=self.settings.ping_binary)

        # One slot per worker thread; a check holds its slot until it really finishes
        self._slots = asyncio.Semaphore(self.settings.max_workers)
        self._probe_tasks: Set[asyncio.Task] = set()
        self._continuous_tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # --- SINGLE HOST ---

    async def ping_host(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        use_icmp: bool = True,
        use_tcp: bool = True,
    ) -> PingResult:
        """
        Probe a host with every enabled strategy and reconcile the results.

        The system ping always runs. All launched strategies are awaited to
        completion before the lowest-latency success is picked. Never raises
        except on cancellation of the calling task.
        """
        if self._closed:
            return PingResult.failure(PingMethod.EXCEPTION, "Ping operation failed: service has been shut down")

        try:
            if not await self._network_available():
                logger.debug(f"Skipping {host}: no network")
                return PingResult.failure(PingMethod.NETWORK_CHECK, "No network connection available")

            monitors: List[BaseMonitor] = []
            if use_icmp:
                monitors.append(self.icmp_monitor)
            if use_tcp:
                monitors.append(self.tcp_monitor)
            monitors.append(self.system_monitor)

            tasks = [self._spawn(self._run_bounded(m, host, port, timeout_ms)) for m in monitors]
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)

            results = [self._as_result(m, outcome) for m, outcome in zip(monitors, outcomes)]
            best = self.reconcile(results)
            logger.debug(
                f"Ping {host}:{port} -> success={best.success} latency={best.latency} method={best.method.value}"
            )
            return best
        except Exception as e:
            logger.error(f"Ping operation failed for {host}:{port}: {e}")
            return PingResult.failure(PingMethod.EXCEPTION, f"Ping operation failed: {e}")

    @staticmethod
    def reconcile(results: List[PingResult]) -> PingResult:
        """Lowest-latency success wins (first on ties); else the last result"""
        successful = [r for r in results if r.success]
        if successful:
            return min(successful, key=lambda r: r.latency)
        if results:
            return results[-1]
        return PingResult.failure(PingMethod.NO_METHODS, "All ping methods failed")

    async def _network_available(self) -> bool:
        # The gate inspects interfaces and routes, so it runs on the worker pool
        async with self._slots:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self.executor, self.network_check)

    async def _run_bounded(self, monitor: BaseMonitor, host: str, port: int, timeout_ms: int) -> PingResult:
        """
        Run one strategy under its budget.

        The budget starts once a worker slot is free, so time spent queued
        behind other hosts never counts against it. An overrunning check keeps
        its slot until its thread returns.
        """
        budget = (timeout_ms + self.settings.probe_grace_ms) / 1000
        await self._slots.acquire()
        check = self._spawn(monitor.check(host, port, timeout_ms))
        check.add_done_callback(lambda _: self._slots.release())
        try:
            return await asyncio.wait_for(asyncio.shield(check), timeout=budget)
        except asyncio.TimeoutError:
            logger.debug(f"{monitor.method.value} probe for {host} exceeded {timeout_ms} ms")
            return PingResult.failure(monitor.method, f"{monitor.method.value} probe timed out after {timeout_ms} ms")

    @staticmethod
    def _as_result(monitor: BaseMonitor, outcome: Any) -> PingResult:
        if isinstance(outcome, PingResult):
            return outcome
        if isinstance(outcome, asyncio.CancelledError):
            return PingResult.failure(monitor.method, "Probe cancelled")
        return PingResult.failure(monitor.method, f"{monitor.method.value} probe failed: {outcome}")

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._probe_tasks.add(task)
        task.add_done_callback(self._probe_tasks.discard)
        return task

    # --- BATCH ---

    async def ping_multiple_hosts(
        self,
        hosts: Iterable[Tuple[str, int]],
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        use_icmp: bool = True,
        use_tcp: bool = True,
    ) -> Dict[str, PingResult]:
        """Probe every (host, port) pair concurrently; keys are "host:port" """

        async def keyed(host: str, port: int) -> Tuple[str, PingResult]:
            result = await self.ping_host(host, port, timeout_ms, use_icmp, use_tcp)
            return f"{host}:{port}", result

        pairs = await asyncio.gather(*(keyed(host, port) for host, port in hosts))
        return dict(pairs)

    # --- CONTINUOUS ---

    def start_continuous_ping(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        on_result: Optional[ResultCallback] = None,
    ) -> asyncio.Task:
        """
        Start a repeating probe on the running loop.
        Cancel the returned task to stop it.
        """
        if self._closed:
            raise ServiceClosedError("Ping service has been shut down")

        loop = asyncio.get_running_loop()
        task = loop.create_task(self._continuous_loop(host, port, interval_ms, on_result))
        self._continuous_tasks.add(task)
        task.add_done_callback(self._continuous_tasks.discard)
        logger.info(f"Continuous ping started for {host}:{port} every {interval_ms} ms")
        return task

    async def _continuous_loop(self, host: str, port: int, interval_ms: int, on_result: Optional[ResultCallback]):
        try:
            while True:
                try:
                    result = await self.ping_host(host, port)
                    await self._deliver(on_result, result)
                except Exception as e:
                    logger.warning(f"Continuous ping error for {host}:{port}: {e}")
                    error_result = PingResult.failure(PingMethod.CONTINUOUS, f"Continuous ping error: {e}")
                    try:
                        await self._deliver(on_result, error_result)
                    except Exception as cb_error:
                        logger.error(f"Result callback failed for {host}:{port}: {cb_error}")

                await asyncio.sleep(interval_ms / 1000)
        except asyncio.CancelledError:
            logger.info(f"Continuous ping stopped for {host}:{port}")
            raise

    @staticmethod
    async def _deliver(on_result: Optional[ResultCallback], result: PingResult):
        if on_result is None:
            return
        ret = on_result(result)
        if inspect.isawaitable(ret):
            await ret

    # --- SHUTDOWN ---

    def cleanup(self):
        """Cancel all outstanding work and release the worker pool. Idempotent."""
        if self._closed:
            return
        self._closed = True

        pending = list(self._continuous_tasks) + list(self._probe_tasks)
        for task in pending:
            task.cancel()

        self.executor.shutdown(wait=False, cancel_futures=True)
        logger.info(f"Ping service shut down ({len(pending)} tasks cancelled)")
