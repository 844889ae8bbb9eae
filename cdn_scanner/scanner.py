"""
Batch scheduler for address scanning
"""

import asyncio
import logging
import time
from ipaddress import IPv4Address
from typing import AsyncIterator, Callable, List, Optional, Sequence

from .models import ProbeOutcome, Sample, ScanStatus
from .results import ResultStore
from .runner import ProbeRunner

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
DiscoveryCallback = Callable[[IPv4Address, List[Sample]], None]


class ScanSession:
    """State of one scan; a new session is created for every start"""

    def __init__(self, addresses: Sequence[IPv4Address], attempts: int = 3):
        self.addresses: List[IPv4Address] = list(addresses)
        self.total = len(self.addresses)
        self.tested = 0
        self.batches_completed = 0
        self.results = ResultStore(attempts)
        self.status: Optional[ScanStatus] = None
        self.reason = ""
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def request_stop(self) -> None:
        """Ask the scheduler to stop after the current batch"""
        if not self._cancelled:
            logger.info("Stop requested, finishing the current batch")
        self._cancelled = True

    @property
    def duration(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time


class ScanScheduler:
    """
    Runs a ProbeRunner over the session worklist in fixed-size batches

    A batch is started only after the previous one has fully settled, so at
    most `concurrency` addresses are probed at any time.
    """

    def __init__(self, runner: ProbeRunner, concurrency: int = 5,
                 on_progress: Optional[ProgressCallback] = None,
                 on_discovery: Optional[DiscoveryCallback] = None):
        if concurrency <= 0:
            raise ValueError("concurrency must be a positive number")
        self.runner = runner
        self.concurrency = concurrency
        self.on_progress = on_progress
        self.on_discovery = on_discovery

    def batches(self, addresses: Sequence[IPv4Address]) -> List[List[IPv4Address]]:
        return [list(addresses[i:i + self.concurrency])
                for i in range(0, len(addresses), self.concurrency)]

    async def scan(self, session: ScanSession,
                   sink: Optional[Callable[[ProbeOutcome], None]] = None) -> ScanStatus:
        """
        Probe every address of the session

        Args:
            session: Fresh session holding the worklist
            sink: Extra receiver for discovered outcomes

        Returns:
            COMPLETED when the worklist was exhausted, STOPPED otherwise
        """
        session.start_time = time.time()
        logger.info(f"Scanning {session.total} addresses, {self.concurrency} at a time")

        for batch in self.batches(session.addresses):
            if session.cancelled:
                break

            offset = session.batches_completed * self.concurrency
            await asyncio.gather(*(
                self._probe_address(session, address, offset + index, sink)
                for index, address in enumerate(batch)
            ))
            session.batches_completed += 1

        session.end_time = time.time()
        if session.tested < session.total:
            session.status = ScanStatus.STOPPED
        else:
            session.status = ScanStatus.COMPLETED

        logger.info(f"Scan {session.status.value}: {session.tested}/{session.total} tested, "
                    f"{len(session.results)} found in {session.duration:.1f}s")
        return session.status

    async def _probe_address(self, session: ScanSession, address: IPv4Address, order: int,
                             sink: Optional[Callable[[ProbeOutcome], None]]) -> None:
        try:
            samples = await self.runner.run(address)
        except Exception as e:
            logger.error(f"Probe of {address} failed: {e}")
            samples = []

        session.tested += 1
        if self.on_progress:
            self.on_progress(session.tested, session.total)

        # Results arriving after a stop request are counted but not recorded
        if not samples or session.cancelled:
            return

        outcome = ProbeOutcome(address, tuple(samples), order)
        session.results.add(outcome)
        logger.debug(f"Found {address} ({', '.join(str(s.latency_ms) for s in samples)}ms)")

        if self.on_discovery:
            self.on_discovery(address, list(samples))
        if sink:
            sink(outcome)

    async def stream(self, session: ScanSession) -> AsyncIterator[ProbeOutcome]:
        """
        Run the scan and yield outcomes as they are found

        Closing the iterator early stops the scan after the current batch.
        """
        queue: "asyncio.Queue[Optional[ProbeOutcome]]" = asyncio.Queue()
        task = asyncio.ensure_future(self.scan(session, sink=queue.put_nowait))
        task.add_done_callback(lambda _: queue.put_nowait(None))

        try:
            while True:
                outcome = await queue.get()
                if outcome is None:
                    break
                yield outcome
        finally:
            if not task.done():
                session.request_stop()
            await task
