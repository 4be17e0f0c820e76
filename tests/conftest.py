"""Shared fixtures for sysmon tests."""
import json
import stat
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from sysmon.collectors.system_models import MetricsSnapshot, PartitionUsage
from sysmon.config.config_manager import ConfigManager


class FakeClock:
    """Settable time source."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def build_config(metrics=None, alerts=None, **extra):
    """Config built from the defaults with the given sections overridden."""
    if alerts is None:
        alerts = {"warning": {"actions": []}, "critical": {"actions": []}}
    data = {"metrics": metrics or {}, "alerts": alerts}
    data.update(extra)
    return ConfigManager.from_dict(ConfigManager.merge(ConfigManager.default_data(), data))


def metric(warning, critical, min_duration=0, repeat=False, repeat_interval="", **extra):
    section = {
        "enabled": True,
        "thresholds": {"warning": warning, "critical": critical},
        "throttle": {
            "min_duration_minutes": min_duration,
            "repeat": repeat,
            "repeat_interval": repeat_interval,
        },
    }
    section.update(extra)
    return section


def snapshot(cpu=10.0, used=50.0, free=50.0, partitions=()):
    return MetricsSnapshot(
        cpu_percent=cpu,
        memory_used_percent=used,
        memory_free_percent=free,
        partitions=tuple(partitions),
    )


def partition(percent, device="/dev/sda1", mountpoint="/", fstype="ext4"):
    return PartitionUsage(device=device, mountpoint=mountpoint, fstype=fstype, percent=percent)


@pytest.fixture
def state_path(tmp_path):
    return str(tmp_path / "state" / "state.json")


@pytest.fixture
def make_script(tmp_path):
    """Write an executable shell script and return its path."""

    def _make(name: str, body: str) -> str:
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    return _make


class WebhookServer:
    """Local HTTP server answering POSTs with a scripted list of status codes."""

    def __init__(self, statuses):
        self.statuses = list(statuses)
        self.requests = []
        server = self

        class Handler(BaseHTTPRequestHandler):
            def do_POST(self):
                length = int(self.headers.get("Content-Length", 0))
                body = self.rfile.read(length)
                server.requests.append({
                    "path": self.path,
                    "content_type": self.headers.get("Content-Type"),
                    "json": json.loads(body) if body else None,
                })
                index = len(server.requests) - 1
                status = server.statuses[min(index, len(server.statuses) - 1)]
                self.send_response(status)
                self.send_header("Content-Length", "0")
                self.end_headers()

            def log_message(self, format, *args):
                pass

        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)

    @property
    def url(self) -> str:
        host, port = self.httpd.server_address[:2]
        return f"http://{host}:{port}/hook"

    def start(self):
        self.thread.start()
        return self

    def stop(self):
        self.httpd.shutdown()
        self.httpd.server_close()


@pytest.fixture
def webhook_server():
    """Factory for started WebhookServers; all are stopped at teardown."""
    servers = []

    def _start(*statuses):
        server = WebhookServer(statuses or (200,)).start()
        servers.append(server)
        return server

    yield _start
    for server in servers:
        server.stop()


@pytest.fixture(autouse=True)
def no_env_proxy(monkeypatch):
    for var in ("HTTP_PROXY", "HTTPS_PROXY", "http_proxy", "https_proxy", "ALL_PROXY", "all_proxy"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")

