"""
Command line entry point
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Dict, Any, List, Optional

from . import __version__
from .config import ConfigLoader, ProbeKind, ReportFormat, ScannerConfig
from .engine import CdnScanner
from .exceptions import ScannerError
from .ip_parser import RangeExpander
from .models import ScanStatus
from .reporter import ReportGenerator
from .utils import ProgressTracker, print_banner, print_summary, setup_logging, status_message


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog='cdn-scanner',
        description='Find the fastest responding addresses of CDN IPv4 ranges',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cdn-scanner                                 (built-in Cloudflare ranges)
  cdn-scanner -r 104.16.0.0/24 -r 104.17.0.0/24 --max-ping 200
  cdn-scanner -f ranges.txt --probe tls --probe tcp --concurrency 20
  cdn-scanner --format text --top 10 -o best.txt
        """
    )

    parser.add_argument('--range', '-r', dest='ranges', action='append', metavar='CIDR',
                        help='CIDR range to scan (repeatable)')
    parser.add_argument('--ranges-file', '-f', help='File with one CIDR range per line')
    parser.add_argument('--config', '-c', help='YAML or JSON configuration file')
    parser.add_argument('--sni', help='Hostname used for TLS SNI and Host header')
    parser.add_argument('--max-ping', dest='max_ping_ms', type=int,
                        help='Discard samples at or above this latency (ms)')
    parser.add_argument('--attempts', type=int, help='Probe repetitions per address')
    parser.add_argument('--concurrency', type=int, help='Addresses probed per batch')
    parser.add_argument('--timeout', dest='timeout_ms', type=int, help='Per-attempt timeout (ms)')
    parser.add_argument('--delay', dest='attempt_delay_ms', type=int,
                        help='Delay between repetitions (ms)')
    parser.add_argument('--probe', dest='probes', action='append',
                        choices=[k.value for k in ProbeKind],
                        help='Probe in fallback order (repeatable)')
    parser.add_argument('--max-addresses', type=int, help='Refuse expansions larger than this')
    parser.add_argument('--no-defaults', action='store_true',
                        help='Do not fall back to the built-in ranges')
    parser.add_argument('--output', '-o', dest='output_file', help='Report file')
    parser.add_argument('--format', dest='report_format',
                        choices=[f.value for f in ReportFormat], help='Report format')
    parser.add_argument('--top', type=int, help='Only report the N fastest addresses')
    parser.add_argument('--stdout', action='store_true', help='Print the report instead of saving it')
    parser.add_argument('--no-progress', action='store_true', help='Hide the progress line')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    parser.add_argument('--init-config', metavar='PATH', nargs='?', const='cdn_scanner.yaml',
                        help='Write a default configuration file and exit')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Command line values that take precedence over the configuration file"""
    overrides = {
        'ranges': args.ranges,
        'sni': args.sni,
        'max_ping_ms': args.max_ping_ms,
        'attempts': args.attempts,
        'concurrency': args.concurrency,
        'timeout_ms': args.timeout_ms,
        'attempt_delay_ms': args.attempt_delay_ms,
        'probes': args.probes,
        'max_addresses': args.max_addresses,
        'output_file': args.output_file,
        'report_format': args.report_format,
        'top': args.top,
    }
    if args.ranges_file:
        overrides['ranges'] = (args.ranges or []) + RangeExpander.parse_file(args.ranges_file)
    if args.no_defaults:
        overrides['use_default_ranges'] = False
    if args.no_progress:
        overrides['show_progress'] = False
    if args.verbose:
        overrides['log_level'] = 'DEBUG'
    return overrides


def install_stop_handler(scanner: CdnScanner) -> None:
    """Ctrl+C stops after the current batch instead of aborting"""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, scanner.stop)
    except (NotImplementedError, RuntimeError):
        # Windows event loops have no signal handler support
        pass


async def run(config: ScannerConfig, to_stdout: bool = False) -> int:
    scanner = CdnScanner(config)

    try:
        session = scanner.prepare()
    except ScannerError as e:
        logging.error(f"Scan not started: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_summary(config, session.total)
    progress = ProgressTracker(show_progress=config.show_progress)
    install_stop_handler(scanner)

    report = await scanner.start(
        on_progress=progress.update,
        on_discovery=progress.discovered,
        session=session,
    )
    progress.finish()
    print(status_message(report), file=sys.stderr)

    if report.status is ScanStatus.FAILED:
        return 1

    reporter = ReportGenerator(config)
    text = reporter.generate(report)
    if to_stdout:
        print(text)
    elif report.found:
        path = reporter.output_path()
        if not reporter.save_report(text, str(path)):
            return 1
        print(f"Report saved to {path}", file=sys.stderr)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main function"""
    args = parse_arguments(argv)

    if args.init_config:
        path = ConfigLoader.write_default(args.init_config)
        print(f"Configuration written to {path}")
        return 0

    try:
        config = ConfigLoader.load(args.config, build_overrides(args))
    except (OSError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config)
    print_banner()

    try:
        return asyncio.run(run(config, to_stdout=args.stdout))
    except KeyboardInterrupt:
        print("\n\nScan interrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
