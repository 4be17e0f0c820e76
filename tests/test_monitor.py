"""End-to-end evaluation cycles."""
import threading

import pytest

from conftest import build_config, metric, partition, snapshot
from sysmon.core.errors import DispatchError, StateError
from sysmon.core.monitor import SystemMonitor
from sysmon.core.state import StateStore
from sysmon.core.throttle import ThrottleEngine


class RecordingDispatcher:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def __call__(self, warnings, criticals, config):
        self.calls.append((list(warnings), list(criticals)))
        if self.error is not None:
            raise self.error


@pytest.fixture
def disk_config():
    return build_config({"disk": metric(80, 90, min_duration=0, repeat=False)})


def make_monitor(config, state_path, clock, dispatcher=None):
    store = StateStore(state_path, clock=clock)
    store.load_all()
    return SystemMonitor(config, store, engine=ThrottleEngine(clock=clock),
                         dispatcher=dispatcher or RecordingDispatcher())


class TestRunCycle:

    def test_alert_once_then_suppressed(self, disk_config, state_path, clock):
        dispatcher = RecordingDispatcher()
        monitor = make_monitor(disk_config, state_path, clock, dispatcher)
        snap = snapshot(partitions=[partition(85.0)])

        first = monitor.run_cycle(snap)
        assert [(v.metric, v.level) for v in first.warnings] == [("disk", "warning")]
        assert first.criticals == []
        assert first.status.status == "WARN"

        clock.advance(60)
        second = monitor.run_cycle(snap)
        assert second.warnings == [] and second.criticals == []
        assert [(v.metric, v.level) for v in second.candidates] == [("disk", "warning")]
        assert second.status.to_dict() == {"status": "OK", "info": []}

        assert len(dispatcher.calls[0][0]) == 1
        assert dispatcher.calls[1] == ([], [])

    def test_each_warning_action_invoked_once(self, state_path, clock, make_script, tmp_path):
        out = tmp_path / "calls"
        script = make_script("alert.sh", f'echo "$1 $2" >> "{out}"')
        config = build_config(
            {"disk": metric(80, 90)},
            alerts={"warning": {"actions": [{"type": "script", "path": script}]},
                    "critical": {"actions": []}},
        )
        store = StateStore(state_path, clock=clock)
        monitor = SystemMonitor(config, store, engine=ThrottleEngine(clock=clock))
        snap = snapshot(partitions=[partition(85.0)])

        monitor.run_cycle(snap)
        monitor.run_cycle(snap)

        assert out.read_text().splitlines() == ["disk warning"]

    def test_state_survives_restart(self, disk_config, state_path, clock):
        snap = snapshot(partitions=[partition(85.0)])
        make_monitor(disk_config, state_path, clock).run_cycle(snap)

        restarted = make_monitor(disk_config, state_path, clock)
        assert restarted.run_cycle(snap).warnings == []

    def test_resolved_violation_cleared(self, disk_config, state_path, clock):
        monitor = make_monitor(disk_config, state_path, clock)
        monitor.run_cycle(snapshot(partitions=[partition(85.0)]))
        monitor.run_cycle(snapshot(partitions=[partition(40.0)]))
        assert monitor.store.keys() == []

        reloaded = StateStore(state_path)
        assert reloaded.load_all() == {}

    def test_escalation_to_critical(self, disk_config, state_path, clock):
        monitor = make_monitor(disk_config, state_path, clock)
        monitor.run_cycle(snapshot(partitions=[partition(85.0)]))
        result = monitor.run_cycle(snapshot(partitions=[partition(95.0)]))
        assert [v.level for v in result.criticals] == ["critical"]
        assert result.status.status == "CRITICAL"
        assert monitor.store.keys() == ["disk_critical"]

    def test_dispatch_failure_still_commits_state(self, disk_config, state_path, clock):
        dispatcher = RecordingDispatcher(error=DispatchError(["webhook down"]))
        monitor = make_monitor(disk_config, state_path, clock, dispatcher)
        snap = snapshot(partitions=[partition(85.0)])

        with pytest.raises(DispatchError) as excinfo:
            monitor.run_cycle(snap)
        assert excinfo.value.result.status.status == "WARN"

        reloaded = StateStore(state_path)
        reloaded.load_all()
        assert reloaded.get("disk", "warning").has_alerted

        dispatcher.error = None
        assert monitor.run_cycle(snap).warnings == []

    def test_persist_failure_aborts_before_dispatch(self, disk_config, tmp_path, clock):
        blocker = tmp_path / "file"
        blocker.write_text("")
        dispatcher = RecordingDispatcher()
        monitor = make_monitor(disk_config, str(blocker / "state.json"), clock, dispatcher)

        with pytest.raises(StateError):
            monitor.run_cycle(snapshot(partitions=[partition(85.0)]))
        assert dispatcher.calls == []

    def test_concurrent_cycles_alert_once(self, state_path, clock):
        config = build_config({"cpu": metric(70, 90)})
        dispatcher = RecordingDispatcher()
        monitor = make_monitor(config, state_path, clock, dispatcher)
        snap = snapshot(cpu=95.0)

        threads = [threading.Thread(target=monitor.run_cycle, args=(snap,)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        alerted = sum(len(criticals) for _, criticals in dispatcher.calls)
        assert alerted == 1

    def test_collects_when_no_snapshot_given(self, disk_config, state_path, clock):
        class StubCollector:
            def collect(self):
                return snapshot(partitions=[partition(99.0)])

        store = StateStore(state_path, clock=clock)
        monitor = SystemMonitor(disk_config, store, collector=StubCollector(),
                                engine=ThrottleEngine(clock=clock),
                                dispatcher=RecordingDispatcher())
        assert [v.level for v in monitor.run_cycle().criticals] == ["critical"]
