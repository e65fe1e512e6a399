import socket
import subprocess
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock, call, patch

from pingstate.monitors import ICMPMonitor, TCPMonitor, SystemPingMonitor, PingMethod, parse_ping_output


@pytest.fixture
def mock_ping():
    with patch("pingstate.monitors.icmp_monitor.ping") as mock_ping_func:
        yield mock_ping_func


@pytest.fixture
def mock_resolve():
    with patch("pingstate.monitors.icmp_monitor.resolve_address") as mock_resolve_address:
        mock_resolve_address.return_value = (socket.AF_INET, ("1.2.3.4", 0))
        yield mock_resolve_address


@pytest.fixture
def mock_pacing():
    with patch("pingstate.monitors.icmp_monitor.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


# --- ICMP ---

@pytest.mark.asyncio
async def test_icmp_averages_successful_attempts(mock_ping, mock_resolve):
    mock_ping.side_effect = [10.0, 20.0, 30.0]

    result = await ICMPMonitor().check("example.com", 80, 3000)

    assert result.success is True
    assert result.latency == 20
    assert result.method == PingMethod.ICMP
    assert result.error is None
    # Capped at 3 attempts, each with a third of the budget
    assert mock_ping.call_count == 3
    assert mock_ping.call_args.kwargs["timeout"] == 1.0
    assert mock_ping.call_args.kwargs["unit"] == "ms"
    mock_resolve.assert_called_once_with("example.com")


@pytest.mark.asyncio
async def test_icmp_ignores_failed_attempts(mock_ping, mock_resolve):
    # ping3 returns None on timeout and False on error
    mock_ping.side_effect = [None, 12.7, False]

    result = await ICMPMonitor().check("example.com", 80, 3000)

    assert result.success is True
    assert result.latency == 12


@pytest.mark.asyncio
async def test_icmp_attempt_exception_counts_as_failure(mock_ping, mock_resolve):
    mock_ping.side_effect = [OSError("permission denied"), 8.0, 10.0]

    result = await ICMPMonitor().check("example.com", 80, 3000)

    assert result.success is True
    assert result.latency == 9


@pytest.mark.asyncio
async def test_icmp_unreachable(mock_ping, mock_resolve):
    mock_ping.return_value = None

    result = await ICMPMonitor().check("example.com", 80, 3000)

    assert result.success is False
    assert result.latency == -1
    assert result.method == PingMethod.ICMP
    assert result.error == "Host not reachable via ICMP"


@pytest.mark.asyncio
async def test_icmp_resolution_failure(mock_ping, mock_resolve):
    mock_resolve.side_effect = socket.gaierror("Name or service not known")

    result = await ICMPMonitor().check("no-such-host.invalid", 80, 3000)

    assert result.success is False
    assert result.error.startswith("ICMP ping failed:")
    assert "Name or service not known" in result.error
    mock_ping.assert_not_called()


@pytest.mark.asyncio
async def test_icmp_pings_ipv6_address(mock_ping, mock_resolve):
    mock_resolve.return_value = (socket.AF_INET6, ("::1", 0, 0, 0))
    mock_ping.return_value = 1.0

    result = await ICMPMonitor().check("localhost6", 80, 3000)

    assert result.success is True
    assert mock_ping.call_args.args[0] == "::1"


@pytest.mark.asyncio
async def test_icmp_paces_attempts(mock_ping, mock_resolve, mock_pacing):
    mock_ping.return_value = 5.0

    await ICMPMonitor().check("example.com", 80, 3000)

    # 100 ms between attempts, none after the last one
    assert mock_pacing.await_args_list == [call(0.1), call(0.1)]


# --- TCP ---

@pytest.mark.asyncio
async def test_tcp_connects_to_listening_port():
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    port = server.getsockname()[1]
    try:
        result = await TCPMonitor().check("127.0.0.1", port, 2000)
    finally:
        server.close()

    assert result.success is True
    assert result.method == PingMethod.TCP
    assert result.latency >= 0


@pytest.mark.asyncio
async def test_tcp_connection_refused():
    spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    spare.bind(("127.0.0.1", 0))
    port = spare.getsockname()[1]
    spare.close()

    result = await TCPMonitor().check("127.0.0.1", port, 2000)

    assert result.success is False
    assert result.latency == -1
    assert result.error == "TCP connection refused"


@pytest.mark.asyncio
async def test_tcp_connects_to_ipv6_listener():
    if not socket.has_ipv6:
        pytest.skip("IPv6 not supported")
    server = socket.socket(socket.AF_INET6, socket.SOCK_STREAM)
    try:
        server.bind(("::1", 0))
    except OSError:
        server.close()
        pytest.skip("IPv6 loopback not available")
    server.listen(1)
    port = server.getsockname()[1]
    try:
        result = await TCPMonitor().check("::1", port, 2000)
    finally:
        server.close()

    assert result.success is True
    assert result.error is None


@pytest.mark.asyncio
async def test_tcp_timeout_closes_socket():
    fake_sock = MagicMock()
    fake_sock.connect.side_effect = socket.timeout("timed out")

    with patch("pingstate.monitors.tcp_monitor.socket.socket", return_value=fake_sock):
        result = await TCPMonitor().check("127.0.0.1", 80, 10000)

    assert result.error == "TCP connection timeout"
    # Connect timeout is capped at 3 seconds
    fake_sock.settimeout.assert_called_once_with(3.0)
    fake_sock.close.assert_called_once()


@pytest.mark.asyncio
async def test_tcp_other_failure():
    fake_sock = MagicMock()
    fake_sock.connect.side_effect = OSError("Network is unreachable")

    with patch("pingstate.monitors.tcp_monitor.socket.socket", return_value=fake_sock):
        result = await TCPMonitor().check("127.0.0.1", 80, 1000)

    assert result.success is False
    assert result.error == "TCP ping failed: Network is unreachable"
    fake_sock.settimeout.assert_called_once_with(1.0)
    fake_sock.close.assert_called_once()


# --- SYSTEM ---

LINUX_OUTPUT = """PING 1.1.1.1 (1.1.1.1) 56(84) bytes of data.
64 bytes from 1.1.1.1: icmp_seq=1 ttl=57 time=12.3 ms
64 bytes from 1.1.1.1: icmp_seq=2 ttl=57 time=14.7 ms

--- 1.1.1.1 ping statistics ---
2 packets transmitted, 2 received, 0% packet loss, time 1001ms
rtt min/avg/max/mdev = 12.300/13.500/14.700/1.200 ms
"""


class TestParsePingOutput:

    def test_mean_of_time_samples(self):
        # mean is 13.5, round() gives 14
        assert parse_ping_output(LINUX_OUTPUT) == 14

    def test_summary_fallback_uses_middle_value(self):
        output = "round-trip min/avg/max = 10.1/20.6/30.2 ms"
        assert parse_ping_output(output) == 21

    def test_unparseable_output(self):
        assert parse_ping_output("Request timeout for icmp_seq 0") == -1
        assert parse_ping_output("") == -1


@pytest.mark.asyncio
async def test_system_ping_success():
    monitor = SystemPingMonitor()
    with patch.object(SystemPingMonitor, "_run", return_value=(0, LINUX_OUTPUT)) as mock_run:
        result = await monitor.check("1.1.1.1", 80, 5000)

    assert result.success is True
    assert result.latency == 14
    assert result.method == PingMethod.SYSTEM
    cmd, timeout = mock_run.call_args[0]
    assert cmd[-1] == "1.1.1.1"
    assert timeout == 5.0


@pytest.mark.asyncio
async def test_system_ping_nonzero_exit():
    with patch.object(SystemPingMonitor, "_run", return_value=(1, "")):
        result = await SystemPingMonitor().check("10.255.255.1", 80, 5000)

    assert result.success is False
    assert result.latency == -1
    assert result.error == "System ping failed with exit code 1"


@pytest.mark.asyncio
async def test_system_ping_unparseable_output_is_failure():
    with patch.object(SystemPingMonitor, "_run", return_value=(0, "pong")):
        result = await SystemPingMonitor().check("1.1.1.1", 80, 5000)

    assert result.success is False
    assert result.latency == -1
    assert result.method == PingMethod.SYSTEM


@pytest.mark.asyncio
async def test_system_ping_timeout():
    with patch.object(SystemPingMonitor, "_run", side_effect=subprocess.TimeoutExpired(["ping"], 5)):
        result = await SystemPingMonitor().check("1.1.1.1", 80, 5000)

    assert result.success is False
    assert result.error == "System ping timeout"


@pytest.mark.asyncio
async def test_system_ping_missing_binary():
    monitor = SystemPingMonitor(binary="pingstate-no-such-ping-binary")

    result = await monitor.check("1.1.1.1", 80, 1000)

    assert result.success is False
    assert result.method == PingMethod.SYSTEM
    assert result.error.startswith("System ping failed:")


def test_system_run_kills_overrunning_process():
    cmd = [sys.executable, "-c", "import time; time.sleep(10)"]

    with pytest.raises(subprocess.TimeoutExpired):
        SystemPingMonitor._run(cmd, 0.2)


def test_build_command_linux():
    monitor = SystemPingMonitor(binary="ping")
    monitor.platform = "linux"

    assert monitor.build_command("example.com", 5000) == ["ping", "-c", "2", "-W", "5", "example.com"]
    # Wait never drops below one second
    assert monitor.build_command("example.com", 300) == ["ping", "-c", "2", "-W", "1", "example.com"]


def test_build_command_windows():
    monitor = SystemPingMonitor(binary="ping")
    monitor.platform = "windows"

    assert monitor.build_command("example.com", 5000) == ["ping", "-n", "2", "-w", "5000", "example.com"]
