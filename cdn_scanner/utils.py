"""
Console and logging helpers
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional

from .config import ScannerConfig
from .models import ScanReport, ScanStatus


def setup_logging(config: ScannerConfig):
    """
    Configure logging

    Args:
        config: Scanner configuration
    """
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)

    log_format = '%(asctime)s - %(levelname)s - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    logging.getLogger().handlers.clear()

    formatter = logging.Formatter(log_format, date_format)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Console goes to stderr so CSV on stdout stays clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    if log_level > logging.DEBUG:
        logging.getLogger('asyncio').setLevel(logging.WARNING)
        logging.getLogger('aiohttp').setLevel(logging.WARNING)
        logging.getLogger('websockets').setLevel(logging.WARNING)


class ProgressTracker:
    """Progress line for the console"""

    def __init__(self, show_progress: bool = True, stream=None):
        self.total = 0
        self.completed = 0
        self.found = 0
        self.show_progress = show_progress
        self.stream = stream or sys.stderr
        self.start_time = time.time()
        self.last_update = 0.0
        self.update_interval = 0.5

    def update(self, completed: int, total: int):
        """Progress callback: (tested, total)"""
        self.completed = completed
        self.total = total
        current_time = time.time()

        if self.show_progress and (current_time - self.last_update >= self.update_interval
                                   or completed == total):
            self._display()
            self.last_update = current_time

    def discovered(self, address, samples):
        """Discovery callback: (address, samples)"""
        self.found += 1
        if self.show_progress:
            pings = ", ".join(str(s.latency_ms) for s in samples)
            print(f"\rFound {address} ({pings} ms)".ljust(70), file=self.stream)

    def _display(self):
        elapsed = time.time() - self.start_time
        percent = (self.completed / self.total * 100) if self.total > 0 else 0

        if elapsed > 0:
            ips_per_sec = self.completed / elapsed
            remaining = (self.total - self.completed) / ips_per_sec if ips_per_sec > 0 else 0

            print(f"\rTested: {self.completed}/{self.total} ({percent:.1f}%) | "
                  f"Found: {self.found} | "
                  f"Speed: {ips_per_sec:.1f} IP/s | "
                  f"Remaining: {remaining:.0f}s", end="", file=self.stream, flush=True)

    def finish(self):
        if self.show_progress:
            elapsed = time.time() - self.start_time
            print(f"\nScan finished in {elapsed:.1f} seconds", file=self.stream)


def status_message(report: ScanReport) -> str:
    """One-line status for the end of a scan"""
    if report.status is ScanStatus.FAILED:
        return f"Failed - {report.reason}"
    prefix = "Finished" if report.status is ScanStatus.COMPLETED else "Stopped"
    if report.found == 0:
        return f"{prefix} - no address found"
    return f"{prefix} - {report.found} addresses found"


def print_banner(stream=None):
    banner = """
    +------------------------------------------------------+
    |              CDN EDGE ADDRESS SCANNER                |
    |        Reachability and latency of CIDR ranges       |
    +------------------------------------------------------+
    """
    print(banner, file=stream or sys.stderr)


def print_summary(config: ScannerConfig, address_count: int, stream=None):
    """
    Print settings before the scan starts

    Args:
        config: Scanner configuration
        address_count: Number of addresses to scan
    """
    stream = stream or sys.stderr
    print(f"\n{'=' * 60}", file=stream)
    print("SCAN SETTINGS:", file=stream)
    print(f"  Addresses: {address_count}", file=stream)
    print(f"  SNI: {config.sni}", file=stream)
    print(f"  Probes: {', '.join(p.value for p in config.probes)}", file=stream)
    print(f"  Attempts per address: {config.attempts}", file=stream)
    print(f"  Timeout: {config.timeout_ms} ms", file=stream)
    print(f"  Max ping: {config.max_ping_ms} ms", file=stream)
    print(f"  Concurrency: {config.concurrency}", file=stream)
    print(f"{'=' * 60}\n", file=stream)


def default_output_name(timestamp: Optional[float] = None) -> str:
    """cloudflare-ips-<epoch ms>.csv"""
    if timestamp is None:
        timestamp = time.time()
    return f"cloudflare-ips-{int(timestamp * 1000)}.csv"
