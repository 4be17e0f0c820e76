"""Tests for the HTTP status server."""
import pytest
from fastapi.testclient import TestClient

from conftest import build_config, metric, partition, snapshot
from sysmon.core.errors import CollectionError
from sysmon.core.monitor import SystemMonitor
from sysmon.core.state import StateStore
from sysmon.core.throttle import ThrottleEngine
from sysmon.server import create_app


class ScriptedCollector:
    """Returns queued snapshots; an exception in the queue is raised instead."""

    def __init__(self, *results):
        self.results = list(results)

    def collect(self):
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def make_client(state_path, clock):
    def _make(*results, metrics=None):
        config = build_config(metrics or {"disk": metric(80, 90), "cpu": metric(70, 90)})
        store = StateStore(state_path, clock=clock)
        monitor = SystemMonitor(config, store, collector=ScriptedCollector(*results),
                                engine=ThrottleEngine(clock=clock))
        return TestClient(create_app(monitor))

    return _make


class TestStatusEndpoint:

    def test_ok(self, make_client):
        client = make_client(snapshot())
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"status": "OK", "info": []}

    def test_critical_listed_before_warning(self, make_client):
        client = make_client(snapshot(cpu=75.0, partitions=[partition(95.0)]))
        body = client.get("/").json()
        assert body["status"] == "CRITICAL"
        assert len(body["info"]) == 2
        assert body["info"][0].startswith("disk: ")
        assert body["info"][1].startswith("cpu: ")

    def test_throttled_on_second_request(self, make_client):
        client = make_client(snapshot(cpu=75.0))
        assert client.get("/").json()["status"] == "WARN"
        assert client.get("/").json() == {"status": "OK", "info": []}

    def test_error_then_recovery(self, make_client):
        client = make_client(CollectionError("failed to get system stats: boom"), snapshot())

        response = client.get("/")
        assert response.status_code == 500
        assert response.json() == {
            "status": "ERROR", "info": ["failed to get system stats: boom"]}

        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "OK"


class TestHealthEndpoint:

    def test_health(self, make_client):
        client = make_client(CollectionError("never collected"))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "OK"}
