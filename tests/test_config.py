import json

import pytest
import yaml

from cdn_scanner.config import (
    ConfigLoader, DEFAULT_RANGES, DEFAULT_SNI, ProbeKind, ReportFormat, ScannerConfig,
)


def test_defaults():
    config = ScannerConfig()
    assert config.sni == DEFAULT_SNI == "speed.cloudflare.com"
    assert config.max_ping_ms == 300
    assert config.attempts == 3
    assert config.concurrency == 5
    assert config.timeout_ms == 3000
    assert config.probes == [ProbeKind.IMAGE, ProbeKind.WEBSOCKET]
    assert config.effective_ranges == DEFAULT_RANGES


@pytest.mark.parametrize("field,value", [
    ("attempts", 0),
    ("timeout_ms", 0),
    ("concurrency", -1),
    ("max_ping_ms", 0),
    ("max_addresses", 0),
    ("attempt_delay_ms", -5),
    ("port", 70000),
    ("sni", ""),
    ("probes", []),
    ("log_level", "LOUD"),
])
def test_invalid_values(field, value):
    with pytest.raises(ValueError):
        ScannerConfig(**{field: value})


def test_unknown_probe_name():
    with pytest.raises(ValueError, match="unknown probe"):
        ScannerConfig(probes=["carrier-pigeon"])


def test_from_dict_coerces_enums_and_ignores_unknown_keys():
    config = ScannerConfig.from_dict({
        "probes": ["tls", "tcp"],
        "report_format": "TEXT",
        "colour": "blue",
    })
    assert config.probes == [ProbeKind.TLS, ProbeKind.TCP]
    assert config.report_format is ReportFormat.TEXT


def test_effective_ranges_without_defaults():
    assert ScannerConfig(use_default_ranges=False).effective_ranges == []
    assert ScannerConfig(ranges=["10.0.0.0/30"], use_default_ranges=False).effective_ranges == ["10.0.0.0/30"]


def test_load_yaml(tmp_path):
    path = tmp_path / "scanner.yaml"
    path.write_text(yaml.safe_dump({
        "scanner": {"sni": "edge.example.com", "concurrency": 20, "ranges": ["10.0.0.0/30"]}
    }), encoding="utf-8")

    config = ConfigLoader.load(str(path))

    assert config.sni == "edge.example.com"
    assert config.concurrency == 20
    assert config.ranges == ["10.0.0.0/30"]
    assert config.attempts == 3


def test_load_json_with_overrides(tmp_path):
    path = tmp_path / "scanner.json"
    path.write_text(json.dumps({"max_ping_ms": 150, "attempts": 4}), encoding="utf-8")

    config = ConfigLoader.load(str(path), overrides={"attempts": 2, "sni": None})

    assert config.max_ping_ms == 150
    assert config.attempts == 2
    assert config.sni == DEFAULT_SNI


def test_missing_explicit_file():
    with pytest.raises(FileNotFoundError):
        ConfigLoader.load("/nonexistent/scanner.yaml")


def test_search_path_and_broken_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert ConfigLoader.load().concurrency == 5

    (tmp_path / "cdn_scanner.yaml").write_text("scanner: [unclosed", encoding="utf-8")
    assert ConfigLoader.load().concurrency == 5

    (tmp_path / "cdn_scanner.yaml").write_text("concurrency: 9\n", encoding="utf-8")
    assert ConfigLoader.load().concurrency == 9


def test_write_default_is_loadable(tmp_path):
    path = ConfigLoader.write_default(str(tmp_path / "config" / "cdn_scanner.yaml"))
    config = ConfigLoader.load(str(path))
    assert config.ranges == DEFAULT_RANGES
    assert config.to_dict() == ScannerConfig(ranges=list(DEFAULT_RANGES)).to_dict()


def test_null_max_addresses_disables_the_cap(tmp_path):
    path = tmp_path / "scanner.yaml"
    path.write_text("scanner:\n  max_addresses: null\n", encoding="utf-8")

    config = ConfigLoader.load(str(path))

    assert config.max_addresses is None
