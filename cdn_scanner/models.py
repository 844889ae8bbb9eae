"""
Data models for the CDN scanner
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from ipaddress import IPv4Address
from typing import Optional, Tuple, Dict, Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .results import ResultStore


class ScanStatus(Enum):
    """Terminal state of a scan"""
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class Sample:
    """One probe attempt: a latency in milliseconds or an explicit no-response marker"""
    latency_ms: Optional[int] = None
    probe: str = ""

    @classmethod
    def no_response(cls, probe: str = "") -> "Sample":
        return cls(latency_ms=None, probe=probe)

    @property
    def responded(self) -> bool:
        return self.latency_ms is not None

    def __str__(self) -> str:
        return f"{self.latency_ms}ms" if self.responded else "no response"


@dataclass(frozen=True)
class ProbeOutcome:
    """Samples kept for one address, in attempt order"""
    address: IPv4Address
    samples: Tuple[Sample, ...]
    order: int = 0

    @property
    def latencies(self) -> Tuple[int, ...]:
        return tuple(s.latency_ms for s in self.samples if s.responded)

    @property
    def found(self) -> bool:
        return len(self.latencies) > 0

    @property
    def mean_ms(self) -> Optional[float]:
        """Arithmetic mean of the real measurements, None if there are none"""
        values = self.latencies
        if not values:
            return None
        return sum(values) / len(values)

    @property
    def rounded_mean(self) -> Optional[int]:
        """Mean rounded to the nearest integer, halves rounded up"""
        mean = self.mean_ms
        if mean is None:
            return None
        return int(math.floor(mean + 0.5))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip": str(self.address),
            "pings": list(self.latencies),
            "average": self.rounded_mean,
        }


@dataclass
class ScanReport:
    """Final result of one scan session"""
    status: ScanStatus
    tested: int = 0
    total: int = 0
    reason: str = ""
    duration: float = 0.0
    results: Optional["ResultStore"] = None
    error: Optional[Exception] = field(default=None, repr=False)

    @property
    def found(self) -> int:
        return len(self.results) if self.results is not None else 0

    @property
    def progress_percent(self) -> float:
        if self.total == 0:
            return 0.0
        return (self.tested / self.total) * 100
