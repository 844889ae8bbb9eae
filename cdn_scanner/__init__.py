"""
CDN edge address scanner
"""

__version__ = "1.0.0"
__author__ = "Network Automation Team"

from .config import ScannerConfig, ConfigLoader, ProbeKind, ReportFormat, DEFAULT_RANGES
from .exceptions import ScannerError, MalformedRangeError, RangeTooLargeError, EmptyWorklistError
from .ip_parser import AddressRange, RangeExpander
from .models import Sample, ProbeOutcome, ScanStatus, ScanReport
from .probes import (
    ProbeStrategy, ImageLoadProbe, SecureSocketProbe, HttpHeadProbe,
    TlsHandshakeProbe, TcpConnectProbe, build_strategies,
)
from .runner import ProbeRunner
from .results import ResultStore
from .scanner import ScanScheduler, ScanSession
from .engine import CdnScanner
from .reporter import ReportGenerator

__all__ = [
    'ScannerConfig', 'ConfigLoader', 'ProbeKind', 'ReportFormat', 'DEFAULT_RANGES',
    'ScannerError', 'MalformedRangeError', 'RangeTooLargeError', 'EmptyWorklistError',
    'AddressRange', 'RangeExpander',
    'Sample', 'ProbeOutcome', 'ScanStatus', 'ScanReport',
    'ProbeStrategy', 'ImageLoadProbe', 'SecureSocketProbe', 'HttpHeadProbe',
    'TlsHandshakeProbe', 'TcpConnectProbe', 'build_strategies',
    'ProbeRunner', 'ResultStore', 'ScanScheduler', 'ScanSession', 'CdnScanner',
    'ReportGenerator',
]
