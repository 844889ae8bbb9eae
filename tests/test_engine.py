import asyncio

import pytest

from conftest import ScriptedProbe, StubProbe
from cdn_scanner.config import DEFAULT_RANGES, ScannerConfig
from cdn_scanner.engine import CdnScanner
from cdn_scanner.exceptions import EmptyWorklistError, MalformedRangeError, RangeTooLargeError
from cdn_scanner.ip_parser import RangeExpander
from cdn_scanner.models import ScanStatus


def fast_config(**kwargs):
    kwargs.setdefault("attempt_delay_ms", 0)
    return ScannerConfig(**kwargs)


def test_full_scan_reports_found_addresses():
    probe = ScriptedProbe({
        "198.51.100.1": [80, 90, 100],
        "198.51.100.2": [20, None, 30],
    })
    scanner = CdnScanner(fast_config(), strategies=[probe])
    progress, found = [], []

    report = asyncio.run(scanner.start(
        ["198.51.100.0/30"],
        on_progress=lambda tested, total: progress.append((tested, total)),
        on_discovery=lambda address, samples: found.append(str(address)),
    ))

    assert report.status is ScanStatus.COMPLETED
    assert (report.tested, report.total) == (4, 4)
    assert progress[-1] == (4, 4)
    assert sorted(found) == ["198.51.100.1", "198.51.100.2"]
    assert [str(o.address) for o in report.results.ranked()] == ["198.51.100.2", "198.51.100.1"]
    assert report.results.to_csv().splitlines()[1] == "198.51.100.2,20,30,,25"


def test_malformed_range_fails_before_probing():
    probe = StubProbe(latency=10)
    scanner = CdnScanner(fast_config(), strategies=[probe])

    report = asyncio.run(scanner.start(["198.51.100.0/30", "10.0.0/24"]))

    assert report.status is ScanStatus.FAILED
    assert "10.0.0/24" in report.reason
    assert isinstance(report.error, MalformedRangeError)
    assert report.tested == 0
    assert probe.calls == []


def test_too_large_range_fails():
    scanner = CdnScanner(fast_config(max_addresses=16), strategies=[StubProbe(latency=10)])
    report = asyncio.run(scanner.start(["10.0.0.0/24"]))
    assert report.status is ScanStatus.FAILED
    assert isinstance(report.error, RangeTooLargeError)


def test_empty_worklist_when_defaults_disabled():
    scanner = CdnScanner(fast_config(use_default_ranges=False), strategies=[StubProbe(latency=10)])
    with pytest.raises(EmptyWorklistError):
        scanner.prepare()

    report = asyncio.run(scanner.start())
    assert report.status is ScanStatus.FAILED
    assert isinstance(report.error, EmptyWorklistError)


def test_default_ranges_are_used():
    session = CdnScanner(fast_config(), strategies=[StubProbe()]).prepare()
    assert session.total == 256 * len(DEFAULT_RANGES)
    assert str(session.addresses[0]) == "162.159.192.0"
    assert str(session.addresses[-1]) == "188.114.99.255"


def test_configured_ranges_take_precedence():
    session = CdnScanner(fast_config(ranges=["10.1.0.0/31"]), strategies=[StubProbe()]).prepare()
    assert [str(a) for a in session.addresses] == ["10.1.0.0", "10.1.0.1"]


def test_each_start_uses_a_fresh_session():
    scanner = CdnScanner(fast_config(attempts=1), strategies=[StubProbe(latency=15)])

    first = asyncio.run(scanner.start(["10.0.0.0/30"]))
    first_session = scanner.session
    second = asyncio.run(scanner.start(["10.0.0.0/31"]))

    assert scanner.session is not first_session
    assert first.found == 4
    assert second.found == 2
    assert first.results is not second.results


def test_stop_from_progress_callback():
    scanner = CdnScanner(fast_config(concurrency=5, attempts=1), strategies=[StubProbe(latency=15)])

    def on_progress(tested, total):
        if tested == 5:
            scanner.stop()

    report = asyncio.run(scanner.start(["10.0.0.0/28"], on_progress=on_progress))

    assert report.status is ScanStatus.STOPPED
    assert report.tested == 5
    assert report.total == 16


def test_stop_without_session_is_harmless():
    CdnScanner(fast_config(), strategies=[StubProbe()]).stop()


def test_uncapped_config_expands_large_ranges():
    scanner = CdnScanner(fast_config(max_addresses=None), strategies=[StubProbe()])
    assert scanner.prepare(["10.0.0.0/15"]).total == 131072


def test_start_reuses_prepared_session(monkeypatch):
    calls = []
    expand = RangeExpander.expand

    def counting_expand(ranges, max_addresses=None):
        calls.append(list(ranges))
        return expand(ranges, max_addresses)

    monkeypatch.setattr(RangeExpander, "expand", staticmethod(counting_expand))
    scanner = CdnScanner(fast_config(), strategies=[StubProbe(latency=10)])

    session = scanner.prepare(["198.51.100.0/30"])
    report = asyncio.run(scanner.start(session=session))

    assert calls == [["198.51.100.0/30"]]
    assert scanner.session is session
    assert (report.status, report.tested, report.found) == (ScanStatus.COMPLETED, 4, 4)
