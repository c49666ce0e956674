# tests/test_engine.py
import threading

import pytest

from modules.job_harvest.lib import engine
from modules.job_harvest.lib.config import Settings
from modules.job_harvest.lib.errors import HarvestCancelled
from modules.job_harvest.lib.harvesters.base import BaseHarvester
from modules.job_harvest.lib.normalize import RawListing
from service import logging_utils


class StubHarvester(BaseHarvester):
    """Produces `count` listings without touching the network; `boom` makes it raise."""

    kind = "stub"
    platform = "stub"
    platform_name = "Stub"

    def crawl(self, keywords, max_pages, cancel, collector, result):
        if self.params.get("boom"):
            raise RuntimeError("harvester exploded")
        self._check_cancel(cancel)
        for i in range(int(self.params.get("count", 1))):
            raw = RawListing(
                native_id=f"{self.source}-{i}",
                title=f"{keywords} job {i}",
                url=f"https://stub.test/{self.source}/{i}",
            )
            collector.add(self._listing(raw))
        result.pages_fetched = max_pages
        result.stop_reason = "last_page"


@pytest.fixture
def factories():
    calls = []

    def _get(kind):
        calls.append(kind)
        if kind != "stub":
            raise KeyError(f"No harvester registered for kind {kind!r}.")
        return StubHarvester

    _get.calls = calls
    return _get


def _settings(*sources, **kwargs):
    return Settings.from_env_and_kwargs({"keywords": "python", "sources": list(sources), **kwargs})


def test_results_follow_config_order(factories, make_fetcher):
    settings = _settings(
        {"kind": "stub", "source": "a", "params": {"count": 2}},
        {"kind": "stub", "source": "b", "params": {"count": 1, "keywords": "golang", "max_pages": 2}},
        {"kind": "stub", "source": "c", "params": {"count": 0}},
    )
    fetcher, client = make_fetcher({})

    report = engine.run_once(settings, get_harvester=factories, fetcher=fetcher)

    assert [r.source for r in report.results] == ["a", "b", "c"]
    assert report.counts_by_source() == {"a": 2, "b": 1, "c": 0}
    assert [x.title for x in report.listings] == ["python job 0", "python job 1", "golang job 0"]
    assert report.results[0].pages_fetched == 5
    assert report.results[1].pages_fetched == 2
    assert set(report.durations_us) == {"a", "b", "c"}
    # a caller-provided fetcher stays open
    assert not client.closed


def test_one_failing_source_does_not_stop_the_others(factories, make_fetcher):
    settings = _settings(
        {"kind": "stub", "source": "ok"},
        {"kind": "stub", "source": "bad", "params": {"boom": True}},
        {"kind": "nope", "source": "unknown-kind"},
    )
    fetcher, _ = make_fetcher({})

    report = engine.run_once(settings, get_harvester=factories, fetcher=fetcher)

    assert [r.source for r in report.results] == ["ok"]
    errors = logging_utils.read_records(logging_utils.get_error_log_path())
    failed = {rec["source"]: rec["error"] for rec in errors if rec.get("op") == "harvester_run"}
    assert set(failed) == {"bad", "unknown-kind"}
    assert "harvester exploded" in failed["bad"]


def test_skip_network_runs_nothing(factories, make_fetcher):
    settings = _settings({"kind": "stub", "source": "a"}, skip_network=True)
    fetcher, _ = make_fetcher({})

    report = engine.run_once(settings, get_harvester=factories, fetcher=fetcher)

    assert report.results == []
    assert factories.calls == []
    records = logging_utils.read_records(logging_utils.get_activity_log_path())
    assert [r["op"] for r in records] == ["start", "skipped_source", "summary"]


def test_activity_summary_record(factories, make_fetcher):
    settings = _settings({"kind": "stub", "source": "a", "params": {"count": 3}})
    fetcher, _ = make_fetcher({})

    engine.run_once(settings, get_harvester=factories, fetcher=fetcher)

    records = logging_utils.read_records(logging_utils.get_activity_log_path())
    done = next(r for r in records if r["op"] == "source_done")
    assert (done["source"], done["found"], done["stop_reason"]) == ("a", 3, "last_page")
    summary = records[-1]
    assert summary["op"] == "summary"
    assert summary["found_by_source"] == {"a": 3}
    assert summary["found_total"] == 3
    assert summary["_meta"]["pid"]


def test_cancelled_sources_return_partial_results(factories, make_fetcher):
    settings = _settings({"kind": "stub", "source": "a"}, {"kind": "stub", "source": "b"})
    fetcher, _ = make_fetcher({})
    cancel = threading.Event()
    cancel.set()

    report = engine.run_once(settings, get_harvester=factories, cancel=cancel, fetcher=fetcher)

    assert [r.source for r in report.results] == ["a", "b"]
    assert all(r.cancelled and r.stop_reason == "cancelled" for r in report.results)
    assert report.listings == []


def test_cancellation_propagates_when_configured(factories, make_fetcher):
    settings = _settings({"kind": "stub", "source": "a"}, propagate_cancel=True)
    fetcher, _ = make_fetcher({})
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(HarvestCancelled):
        engine.run_once(settings, get_harvester=factories, cancel=cancel, fetcher=fetcher)


def test_engine_closes_the_fetcher_it_built(factories, make_fetcher, monkeypatch):
    fetcher, client = make_fetcher({})
    monkeypatch.setattr(engine, "build_fetcher", lambda settings: fetcher)

    engine.run_once(_settings({"kind": "stub", "source": "a"}), get_harvester=factories)

    assert client.closed


def test_build_fetcher_uses_settings():
    settings = _settings({"kind": "stub", "source": "a"}, timeout=7, default_delay_seconds=0.5, user_agent="probe/1")
    fetcher = engine.build_fetcher(settings)
    try:
        assert fetcher.client.timeout == 7.0
        assert fetcher.client.session.headers["User-Agent"] == "probe/1"
        assert fetcher.gate.default_interval == 0.5
    finally:
        fetcher.close()


def test_default_lookup_uses_the_registry():
    from modules.job_harvest.lib.harvesters.remoteok import RemoteOkHarvester

    assert engine._default_get_harvester("remoteok") is RemoteOkHarvester
