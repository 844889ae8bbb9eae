import asyncio
import time

import pytest

from conftest import ScriptedProbe, StubProbe
from cdn_scanner.config import ScannerConfig, ProbeKind
from cdn_scanner.probes import ImageLoadProbe, SecureSocketProbe
from cdn_scanner.runner import ProbeRunner


def make_runner(*strategies, max_ping_ms=300, attempts=3, delay=0):
    return ProbeRunner(list(strategies), attempts=attempts, timeout_ms=1000,
                       attempt_delay_ms=delay, max_ping_ms=max_ping_ms)


def test_unresponsive_address_yields_nothing():
    probe = StubProbe(latency=None)
    samples = asyncio.run(make_runner(probe).run("192.0.2.1"))
    assert samples == []
    assert len(probe.calls) == 3


def test_fixed_latency_below_threshold_is_kept():
    probe = StubProbe(latency=50)
    samples = asyncio.run(make_runner(probe, max_ping_ms=300).run("192.0.2.1"))
    assert [s.latency_ms for s in samples] == [50, 50, 50]


def test_fixed_latency_above_threshold_is_dropped():
    probe = StubProbe(latency=50)
    samples = asyncio.run(make_runner(probe, max_ping_ms=40).run("192.0.2.1"))
    assert samples == []
    assert len(probe.calls) == 3


def test_threshold_is_exclusive():
    samples = asyncio.run(make_runner(StubProbe(latency=300), max_ping_ms=300).run("192.0.2.1"))
    assert samples == []


def test_fallback_runs_within_the_same_repetition():
    primary = StubProbe(latency=None, name="primary")
    secondary = StubProbe(latency=70, name="secondary")
    samples = asyncio.run(make_runner(primary, secondary).run("192.0.2.1"))

    assert len(primary.calls) == 3
    assert len(secondary.calls) == 3
    assert [s.probe for s in samples] == ["secondary"] * 3


def test_fallback_not_used_when_primary_answers():
    primary = StubProbe(latency=20, name="primary")
    secondary = StubProbe(latency=70, name="secondary")
    asyncio.run(make_runner(primary, secondary).run("192.0.2.1"))
    assert secondary.calls == []


def test_samples_keep_attempt_order():
    probe = ScriptedProbe({"192.0.2.9": [120, None, 80]})
    samples = asyncio.run(make_runner(probe).run("192.0.2.9"))
    assert [s.latency_ms for s in samples] == [120, 80]


def test_configured_attempt_count():
    probe = StubProbe(latency=10)
    samples = asyncio.run(make_runner(probe, attempts=5).run("192.0.2.1"))
    assert len(samples) == 5


def test_delay_between_repetitions():
    start = time.monotonic()
    asyncio.run(make_runner(StubProbe(latency=10), delay=50).run("192.0.2.1"))
    # two gaps between three attempts
    assert time.monotonic() - start >= 0.09


def test_requires_a_strategy():
    with pytest.raises(ValueError):
        ProbeRunner([])


def test_from_config_builds_default_chain():
    config = ScannerConfig(attempts=2, timeout_ms=1500, max_ping_ms=250, attempt_delay_ms=100)
    runner = ProbeRunner.from_config(config)

    assert [type(s) for s in runner.strategies] == [ImageLoadProbe, SecureSocketProbe]
    assert runner.attempts == 2
    assert runner.timeout_ms == 1500
    assert runner.max_ping_ms == 250
    assert runner.attempt_delay_ms == 100


def test_from_config_respects_probe_order():
    config = ScannerConfig(probes=[ProbeKind.WEBSOCKET, ProbeKind.IMAGE])
    runner = ProbeRunner.from_config(config)
    assert [s.name for s in runner.strategies] == ["websocket", "image"]
