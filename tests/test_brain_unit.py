# tests/test_brain_unit.py
import threading

import pytest

from pmtr.brain.cancel import CancelToken
from pmtr.brain.controller import RunController, RunState
from pmtr.brain.state import HopState
from pmtr.config import Settings
from pmtr.prober.fake import FakeProber
from pmtr.schemas import ReplyFromIntermediate, ReplyFromTarget, Target

TARGET = Target(address="8.8.8.8", name="dns.google")


class RecordingRenderer:
    def __init__(self):
        self.updates = []
        self.finals = []

    def update(self, snapshot):
        self.updates.append(snapshot)

    def final(self, snapshot):
        self.finals.append(snapshot)


def fast_settings(**kw):
    kw.setdefault("interval_ms", 0)
    kw.setdefault("timeout_ms", 300)
    kw.setdefault("probe_grace_ms", 200)
    return Settings(**kw)


def test_runcontroller_initialization():
    """RunController starts in INITIALIZING with the given settings."""
    s = fast_settings(max_ttl=10, count=3)
    ctrl = RunController(FakeProber(), s)
    assert ctrl.s.max_ttl == 10
    assert ctrl.s.count == 3
    assert ctrl.state == RunState.INITIALIZING


def test_target_answers_at_first_ttl():
    """Target at TTL 1: one confirmed-final hop and nothing beyond it after discovery."""
    fake = FakeProber(script={ttl: ReplyFromTarget(0.8) for ttl in range(1, 31)})
    renderer = RecordingRenderer()
    ctrl = RunController(fake, fast_settings(count=4), renderer=renderer)

    snap = ctrl.run(TARGET)

    assert snap.final_ttl == 1
    assert len(snap.hops) == 1
    assert snap.hops[0].final
    assert snap.hops[0].state == HopState.CONFIRMED_FINAL
    assert snap.hops[0].address == "8.8.8.8"
    assert snap.hops[0].sent == 4
    assert snap.hops[0].received == 4
    # only the discovery cycle sent anything beyond TTL 1
    later = fake.probed_ttls()[30:]
    assert later == [1, 1, 1]
    for update in renderer.updates:
        assert [h.ttl for h in update.hops] == [1]


def test_silent_routers_then_target():
    """TTLs 1-3 always time out, TTL 4 is the target, five cycles."""
    fake = FakeProber(script={4: ReplyFromTarget(12.0)})
    ctrl = RunController(fake, fast_settings(count=5))

    snap = ctrl.run(TARGET)

    assert ctrl.state == RunState.COMPLETED
    assert snap.final_ttl == 4
    assert [h.ttl for h in snap.hops] == [1, 2, 3, 4]
    final = snap.hops[3]
    assert (final.sent, final.received, final.loss_percent) == (5, 5, 0.0)
    for hop in snap.hops[:3]:
        assert (hop.sent, hop.received, hop.loss_percent) == (5, 0, 100.0)
        assert hop.address is None
        assert hop.last is None and hop.avg is None
        assert hop.best is None and hop.worst is None
        assert hop.stddev is None


def test_unresolved_path_in_report_mode():
    """No reply from the target within max_ttl: all hops reported, path unresolved."""
    script = {ttl: ReplyFromIntermediate(f"10.1.0.{ttl}", 2.0 * ttl) for ttl in range(1, 6)}
    fake = FakeProber(script=script)
    renderer = RecordingRenderer()
    ctrl = RunController(fake, fast_settings(max_ttl=5, report=True, report_cycles=5), renderer=renderer)

    snap = ctrl.run(TARGET)

    assert ctrl.state == RunState.COMPLETED
    assert len(snap.hops) == 5
    assert not snap.complete
    assert snap.final_ttl is None
    assert not any(h.final for h in snap.hops)
    assert all(h.sent == 5 for h in snap.hops)
    assert renderer.updates == []
    assert len(renderer.finals) == 1


def test_continuous_mode_emits_every_cycle():
    fake = FakeProber.linear_path(4)
    renderer = RecordingRenderer()
    ctrl = RunController(fake, fast_settings(count=3), renderer=renderer)

    ctrl.run(TARGET)

    assert [u.cycle for u in renderer.updates] == [1, 2, 3]
    assert len(renderer.finals) == 1
    # no snapshot is ever partial: every visible hop has the same sent count
    for u in renderer.updates:
        assert {h.sent for h in u.hops} == {u.cycle}


def test_cancel_mid_cycle_lets_inflight_probes_finish():
    """Cancel while TTL 4 and 5 are still in flight: they still land in the final snapshot."""
    script = {ttl: ReplyFromIntermediate(f"10.0.0.{ttl}", 1.0) for ttl in range(1, 5)}
    script[5] = ReplyFromTarget(5.0)
    fake = FakeProber(script=script, delays={4: 0.3, 5: 0.3})
    cancel = CancelToken()
    renderer = RecordingRenderer()
    s = fast_settings(max_ttl=5, timeout_ms=1000, probe_grace_ms=500)
    ctrl = RunController(fake, s, renderer=renderer, cancel=cancel)

    timer = threading.Timer(0.1, cancel.cancel)
    timer.start()
    try:
        snap = ctrl.run(TARGET)
    finally:
        timer.cancel()

    assert ctrl.state == RunState.CANCELLED
    assert len(fake.calls) == 5          # no second cycle after cancellation
    assert len(renderer.finals) == 1
    assert snap.cycle == 1
    for hop in snap.hops:
        assert (hop.sent, hop.received) == (1, 1)
    assert snap.final_ttl == 5


def test_cancel_interrupts_interval_sleep():
    fake = FakeProber.linear_path(3)
    cancel = CancelToken()
    s = fast_settings(interval_ms=60_000)
    ctrl = RunController(fake, s, cancel=cancel)

    timer = threading.Timer(0.2, cancel.cancel)
    timer.start()
    try:
        snap = ctrl.run(TARGET)
    finally:
        timer.cancel()

    assert ctrl.state == RunState.CANCELLED
    assert snap.cycle == 1


def test_cancelled_before_start_runs_nothing():
    fake = FakeProber.linear_path(3)
    cancel = CancelToken()
    cancel.cancel()
    renderer = RecordingRenderer()
    ctrl = RunController(fake, fast_settings(), renderer=renderer, cancel=cancel)

    snap = ctrl.run(TARGET)

    assert ctrl.state == RunState.CANCELLED
    assert fake.calls == []
    assert snap.hops == ()
    assert len(renderer.finals) == 1


def test_lossy_hop_is_never_pruned():
    """A router that never answers keeps being probed while the target is unknown or beyond it."""
    script = {1: ReplyFromIntermediate("10.0.0.1", 1.0), 3: ReplyFromTarget(9.0)}
    fake = FakeProber(script=script)
    ctrl = RunController(fake, fast_settings(count=6))

    snap = ctrl.run(TARGET)

    assert fake.probed_ttls().count(2) == 6
    assert snap.hops[1].loss_percent == 100.0
    assert snap.hops[1].state == HopState.ACTIVE


@pytest.mark.parametrize("cycles", [1, 7])
def test_invariants_hold_over_a_flaky_run(cycles):
    script = {
        1: [ReplyFromIntermediate("10.0.0.1", 1.0 + i) for i in range(0, cycles, 2)],
        2: ReplyFromIntermediate("10.0.0.2", 4.0),
        3: [ReplyFromTarget(8.0), ReplyFromTarget(11.0)],
    }
    fake = FakeProber(script=script)
    ctrl = RunController(fake, fast_settings(count=cycles))

    snap = ctrl.run(TARGET)

    for hop in snap.hops:
        assert hop.received <= hop.sent
        assert 0.0 <= hop.loss_percent <= 100.0
        if hop.received:
            assert hop.best <= hop.avg <= hop.worst


def test_long_run_keeps_only_the_latest_report():
    fake = FakeProber.linear_path(3)
    ctrl = RunController(fake, fast_settings(count=50))

    snap = ctrl.run(TARGET)

    assert snap.cycle == 50
    assert ctrl.last_report.cycle == 50
    assert not hasattr(ctrl, "reports")
