"""
Per-address probe runner
"""

import asyncio
import logging
from ipaddress import IPv4Address
from typing import List, Optional, Sequence, Union

from .config import ScannerConfig
from .models import Sample
from .probes import ProbeStrategy, build_strategies

logger = logging.getLogger(__name__)


class ProbeRunner:
    """Runs the configured attempts against one address"""

    def __init__(self, strategies: Sequence[ProbeStrategy], attempts: int = 3,
                 timeout_ms: int = 3000, attempt_delay_ms: int = 200, max_ping_ms: int = 300):
        if not strategies:
            raise ValueError("at least one probe strategy is required")
        self.strategies = list(strategies)
        self.attempts = attempts
        self.timeout_ms = timeout_ms
        self.attempt_delay_ms = attempt_delay_ms
        self.max_ping_ms = max_ping_ms

    @classmethod
    def from_config(cls, config: ScannerConfig,
                    strategies: Optional[Sequence[ProbeStrategy]] = None) -> "ProbeRunner":
        if strategies is None:
            strategies = build_strategies(config.probes, config)
        return cls(
            strategies,
            attempts=config.attempts,
            timeout_ms=config.timeout_ms,
            attempt_delay_ms=config.attempt_delay_ms,
            max_ping_ms=config.max_ping_ms,
        )

    async def run(self, address: Union[IPv4Address, str]) -> List[Sample]:
        """
        Probe one address

        Each repetition tries the strategies in order and stops at the first
        one that answers. Only answers strictly below max_ping_ms are kept;
        slower ones are dropped, not counted as failures.

        Args:
            address: Target address

        Returns:
            Kept samples in attempt order, empty if the address never answered in time
        """
        kept: List[Sample] = []

        for attempt in range(self.attempts):
            sample = await self._attempt_with_fallback(address)

            if sample.responded and sample.latency_ms < self.max_ping_ms:
                kept.append(sample)
            elif sample.responded:
                logger.debug(f"{address}: {sample.latency_ms}ms is above the {self.max_ping_ms}ms limit")

            if attempt < self.attempts - 1 and self.attempt_delay_ms > 0:
                await asyncio.sleep(self.attempt_delay_ms / 1000)

        if kept:
            logger.debug(f"{address}: kept {', '.join(str(s) for s in kept)}")
        return kept

    async def _attempt_with_fallback(self, address) -> Sample:
        sample = Sample.no_response()
        for strategy in self.strategies:
            sample = await strategy.attempt(address, self.timeout_ms)
            if sample.responded:
                break
        return sample
