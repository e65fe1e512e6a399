import pytest
from fastapi.testclient import TestClient

from pingstate.config import Settings
from pingstate.main import app
from pingstate.monitors import PingMethod, PingResult
from pingstate.ping_service import PingService


def ok(method: PingMethod, latency: int) -> PingResult:
    return PingResult(success=True, latency=latency, method=method)


def fail(method: PingMethod, error: str = "unreachable") -> PingResult:
    return PingResult.failure(method, error)


@pytest.fixture
def settings():
    return Settings(max_workers=8, probe_grace_ms=1000)


@pytest.fixture
def service(settings):
    """PingService that believes the network is up"""
    svc = PingService(settings, network_check=lambda: True)
    yield svc
    svc.cleanup()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
