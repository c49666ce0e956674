# tests/test_compliance.py
import threading

import pytest

from modules.job_harvest.lib.compliance import ComplianceGate, origin_of
from modules.job_harvest.lib.errors import HarvestCancelled


class _CancelledMidWait:
    """Event stand-in: not set on entry, but the wait is interrupted."""

    def __init__(self):
        self.waits = []

    def is_set(self):
        return bool(self.waits)

    def wait(self, seconds):
        self.waits.append(seconds)
        return True


@pytest.fixture
def spaced_gate(clock):
    return ComplianceGate(intervals={"djinni.co": 3.0}, default_interval=1.0, clock=clock, sleep=clock.sleep)


def test_origin_of():
    assert origin_of("https://DJINNI.co/jobs/?page=2") == "djinni.co"
    assert origin_of("") == ""


def test_interval_resolution(spaced_gate):
    assert spaced_gate.interval_for("djinni.co") == 3.0
    assert spaced_gate.interval_for("djinni.co", 5.0) == 5.0
    assert spaced_gate.interval_for("djinni.co", 1.0) == 3.0
    assert spaced_gate.interval_for("other.test", 2.5) == 2.5
    assert spaced_gate.interval_for("other.test") == 1.0


def test_first_request_goes_straight_through_then_waits(spaced_gate, clock):
    assert spaced_gate.await_turn("djinni.co") == 0.0
    assert spaced_gate.await_turn("djinni.co") == pytest.approx(3.0)
    clock.now += 10
    assert spaced_gate.await_turn("djinni.co") == 0.0
    assert clock.sleeps == [pytest.approx(3.0)]


def test_origins_are_independent(spaced_gate, clock):
    spaced_gate.await_turn("djinni.co")
    assert spaced_gate.await_turn("jobs.dou.ua") == 0.0
    assert clock.sleeps == []


def test_cancel_before_wait(spaced_gate):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(HarvestCancelled):
        spaced_gate.await_turn("djinni.co", cancel)


def test_cancel_during_wait(spaced_gate):
    spaced_gate.await_turn("djinni.co")
    cancel = _CancelledMidWait()
    with pytest.raises(HarvestCancelled):
        spaced_gate.await_turn("djinni.co", cancel)
    assert cancel.waits == [pytest.approx(3.0)]


def test_policy_block_and_statistics(clock):
    gate = ComplianceGate(
        intervals={}, default_interval=2.0, policy=lambda url: "/private" not in url, clock=clock, sleep=clock.sleep
    )
    assert gate.allows("https://a.test/jobs")
    gate.await_turn("a.test", url="https://a.test/jobs")
    gate.await_turn("a.test", url="https://a.test/jobs?page=2")
    assert not gate.allows("https://a.test/private/admin")

    assert gate.statistics() == {"a.test": {"allowed": 1, "throttled": 1, "blocked": 1}}
    actions = [e.action for e in gate.audit_log()]
    assert actions == ["allowed", "throttled", "blocked"]
    assert gate.audit_log()[1].waited_seconds == pytest.approx(2.0)


def test_audit_window_is_bounded(clock):
    gate = ComplianceGate(intervals={}, default_interval=0.0, clock=clock, sleep=clock.sleep, audit_size=3)
    for _ in range(5):
        gate.await_turn("a.test")
    assert len(gate.audit_log()) == 3
