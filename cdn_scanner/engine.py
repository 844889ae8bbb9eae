"""
Scan entry point: range expansion, session lifecycle and stop handling
"""

import logging
from typing import Optional, Sequence

from .config import ScannerConfig
from .exceptions import EmptyWorklistError, ScannerError
from .ip_parser import RangeExpander
from .models import ScanReport, ScanStatus
from .probes import ProbeStrategy
from .runner import ProbeRunner
from .scanner import DiscoveryCallback, ProgressCallback, ScanScheduler, ScanSession

logger = logging.getLogger(__name__)


class CdnScanner:
    """Finds the fastest responding addresses of a set of CIDR ranges"""

    def __init__(self, config: Optional[ScannerConfig] = None,
                 strategies: Optional[Sequence[ProbeStrategy]] = None):
        self.config = config or ScannerConfig()
        self.runner = ProbeRunner.from_config(self.config, strategies)
        self.session: Optional[ScanSession] = None

    def resolve_ranges(self, ranges: Optional[Sequence[str]] = None) -> list:
        if ranges:
            return list(ranges)
        return self.config.effective_ranges

    def prepare(self, ranges: Optional[Sequence[str]] = None) -> ScanSession:
        """
        Expand the ranges into a new session

        Raises:
            MalformedRangeError, RangeTooLargeError, EmptyWorklistError
        """
        range_list = self.resolve_ranges(ranges)
        if not range_list:
            raise EmptyWorklistError("No address ranges given and default ranges are disabled")

        addresses = RangeExpander.expand(range_list, self.config.max_addresses)
        if not addresses:
            raise EmptyWorklistError()

        logger.info(f"Expanded {len(range_list)} ranges into {len(addresses)} addresses")
        return ScanSession(addresses, self.config.attempts)

    async def start(self, ranges: Optional[Sequence[str]] = None,
                    on_progress: Optional[ProgressCallback] = None,
                    on_discovery: Optional[DiscoveryCallback] = None,
                    session: Optional[ScanSession] = None) -> ScanReport:
        """
        Run a full scan

        Any previous session is discarded. A range error ends the scan as
        FAILED before anything is probed.

        Args:
            ranges: CIDR strings, the configured (or default) ranges when empty
            on_progress: Called with (tested, total) after every address
            on_discovery: Called with (address, samples) for every found address
            session: Session from prepare(), used instead of expanding the ranges again

        Returns:
            Final report
        """
        self.session = None
        if session is None:
            try:
                session = self.prepare(ranges)
            except ScannerError as e:
                logger.error(f"Scan not started: {e}")
                return ScanReport(status=ScanStatus.FAILED, reason=str(e), error=e)

        self.session = session
        scheduler = ScanScheduler(
            self.runner,
            concurrency=self.config.concurrency,
            on_progress=on_progress,
            on_discovery=on_discovery,
        )
        status = await scheduler.scan(session)
        return self.report(session, status)

    @staticmethod
    def report(session: ScanSession, status: ScanStatus) -> ScanReport:
        return ScanReport(
            status=status,
            tested=session.tested,
            total=session.total,
            duration=session.duration,
            results=session.results,
        )

    def stop(self) -> None:
        """Request a graceful stop of the running scan"""
        if self.session is not None:
            self.session.request_stop()
