"""
Configuration and settings for the scanner
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Optional, List

import yaml

from .ip_parser import DEFAULT_MAX_ADDRESSES

logger = logging.getLogger(__name__)

DEFAULT_RANGES = [
    "162.159.192.0/24",
    "162.159.193.0/24",
    "162.159.195.0/24",
    "162.159.204.0/24",
    "188.114.96.0/24",
    "188.114.97.0/24",
    "188.114.98.0/24",
    "188.114.99.0/24",
]

DEFAULT_SNI = "speed.cloudflare.com"


class ReportFormat(Enum):
    """Report output format"""
    TEXT = "text"
    JSON = "json"
    CSV = "csv"


class ProbeKind(Enum):
    """Available probe strategies"""
    IMAGE = "image"
    WEBSOCKET = "websocket"
    HTTP_HEAD = "http-head"
    TLS = "tls"
    TCP = "tcp"


@dataclass
class ScannerConfig:
    """Scanner configuration with validation"""

    # Address ranges
    ranges: List[str] = field(default_factory=list)
    use_default_ranges: bool = True
    max_addresses: Optional[int] = DEFAULT_MAX_ADDRESSES

    # Probe target
    sni: str = DEFAULT_SNI
    port: int = 443
    probe_path: str = "/cdn-cgi/trace"
    probes: List[ProbeKind] = field(default_factory=lambda: [ProbeKind.IMAGE, ProbeKind.WEBSOCKET])

    # Probe timing (milliseconds)
    attempts: int = 3
    timeout_ms: int = 3000
    attempt_delay_ms: int = 200
    fast_error_ms: int = 500
    max_ping_ms: int = 300

    # Performance
    concurrency: int = 5

    # Output
    output_file: Optional[str] = None
    report_format: ReportFormat = ReportFormat.CSV
    top: int = 0
    log_level: str = "INFO"
    log_file: Optional[str] = None
    show_progress: bool = True

    def __post_init__(self):
        """Validate values after initialisation"""
        self.probes = [self._coerce_probe(p) for p in self.probes]
        if isinstance(self.report_format, str):
            self.report_format = ReportFormat(self.report_format.lower())
        self._validate_values()

    @staticmethod
    def _coerce_probe(value) -> ProbeKind:
        if isinstance(value, ProbeKind):
            return value
        try:
            return ProbeKind(str(value).lower())
        except ValueError:
            valid = [k.value for k in ProbeKind]
            raise ValueError(f"unknown probe '{value}', expected one of: {valid}")

    def _validate_values(self):
        """Check that values are in range"""
        if self.attempts <= 0:
            raise ValueError("attempts must be a positive number")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be a positive number")
        if self.attempt_delay_ms < 0:
            raise ValueError("attempt_delay_ms must not be negative")
        if self.fast_error_ms < 0:
            raise ValueError("fast_error_ms must not be negative")
        if self.max_ping_ms <= 0:
            raise ValueError("max_ping_ms must be a positive number")
        if self.concurrency <= 0:
            raise ValueError("concurrency must be a positive number")
        # None lifts the cap
        if self.max_addresses is not None and self.max_addresses <= 0:
            raise ValueError("max_addresses must be a positive number")
        if not 0 < self.port <= 65535:
            raise ValueError(f"invalid port: {self.port}")
        if self.top < 0:
            raise ValueError("top must not be negative")
        if not self.sni:
            raise ValueError("sni must not be empty")
        if not self.probes:
            raise ValueError("at least one probe is required")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_log_levels:
            raise ValueError(f"log_level must be one of: {valid_log_levels}")

    @property
    def effective_ranges(self) -> List[str]:
        """Configured ranges, or the built-in list when none are given and defaults are allowed"""
        if self.ranges:
            return list(self.ranges)
        if self.use_default_ranges:
            return list(DEFAULT_RANGES)
        return []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary"""
        data = asdict(self)
        data["probes"] = [p.value for p in self.probes]
        data["report_format"] = self.report_format.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScannerConfig":
        """Create from a dictionary, unknown keys are ignored"""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        unknown = set(data) - set(known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {sorted(unknown)}")

        if "report_format" in known and isinstance(known["report_format"], str):
            try:
                known["report_format"] = ReportFormat(known["report_format"].lower())
            except ValueError:
                known["report_format"] = ReportFormat.CSV

        return cls(**known)


class ConfigLoader:
    """Configuration file loader"""

    CONFIG_FILES = [
        "cdn_scanner.yaml",
        "config/cdn_scanner.yaml",
        "cdn_scanner.json",
    ]

    @classmethod
    def defaults(cls) -> Dict[str, Any]:
        return ScannerConfig().to_dict()

    @classmethod
    def load(cls, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> ScannerConfig:
        """
        Load configuration

        Args:
            config_path: Path to a YAML or JSON file (optional)
            overrides: Values taking precedence over the file, None values are skipped

        Returns:
            Configuration object
        """
        config_dict = cls.defaults()

        found_config = cls._find_config_file(config_path)
        if config_path and found_config is None:
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if found_config:
            try:
                user_config = cls._load_config_file(found_config)
                config_dict = cls._deep_merge(config_dict, user_config)
                logger.info(f"Loaded configuration from {found_config}")
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.warning(f"Error loading configuration: {e}")
                logger.info("Using default values")
        else:
            logger.debug("No configuration file found, using default values")

        if overrides:
            config_dict.update({k: v for k, v in overrides.items() if v is not None})

        return ScannerConfig.from_dict(config_dict)

    @classmethod
    def _find_config_file(cls, config_path: Optional[str] = None) -> Optional[Path]:
        """Locate the configuration file"""
        if config_path:
            path = Path(config_path)
            if path.exists():
                return path
            return None

        for config_file in cls.CONFIG_FILES:
            path = Path(config_file)
            if path.exists():
                return path

        return None

    @staticmethod
    def _load_config_file(filepath: Path) -> Dict[str, Any]:
        """Read a YAML or JSON configuration file"""
        with open(filepath, 'r', encoding='utf-8') as f:
            if filepath.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"{filepath} must contain a mapping")
        # Section-style files keep scanner settings under a "scanner" key
        if isinstance(data.get("scanner"), dict):
            data = data["scanner"]
        return data

    @classmethod
    def _deep_merge(cls, base: Dict, update: Dict) -> Dict:
        """Deep merge two dictionaries"""
        result = base.copy()
        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    @classmethod
    def write_default(cls, filepath: str = "cdn_scanner.yaml") -> Path:
        """Write the default configuration as a starter YAML file"""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = cls.defaults()
        data["ranges"] = list(DEFAULT_RANGES)
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump({"scanner": data}, f, sort_keys=False, allow_unicode=True)

        logger.info(f"Default configuration written to {path}")
        return path
