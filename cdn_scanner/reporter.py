"""
Report generation
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from . import __version__
from .config import ScannerConfig, ReportFormat
from .models import ScanReport
from .results import ResultStore
from .utils import default_output_name, status_message

logger = logging.getLogger(__name__)


def latency_grade(ms: Optional[float]) -> str:
    if ms is None:
        return "-"
    if ms <= 200:
        return "good"
    if ms <= 400:
        return "warning"
    return "slow"


class ReportGenerator:
    """Renders scan reports"""

    def __init__(self, config: ScannerConfig):
        self.config = config

    def generate(self, report: ScanReport) -> str:
        """
        Render a report in the configured format

        Args:
            report: Finished scan

        Returns:
            Report text
        """
        format_methods = {
            ReportFormat.TEXT: self._generate_text,
            ReportFormat.JSON: self._generate_json,
            ReportFormat.CSV: self._generate_csv,
        }

        method = format_methods.get(self.config.report_format, self._generate_csv)
        return method(report)

    def _ranked(self, report: ScanReport):
        if report.results is None:
            return []
        ranked = report.results.ranked()
        if self.config.top:
            ranked = ranked[:self.config.top]
        return ranked

    def _generate_text(self, report: ScanReport) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        lines = [
            "=" * 70,
            "CDN ADDRESS SCAN REPORT",
            f"Date: {timestamp}",
            "=" * 70,
            "",
            f"  Status: {status_message(report)}",
            f"  Tested: {report.tested}/{report.total} ({report.progress_percent:.1f}%)",
            f"  Found: {report.found}",
            f"  Duration: {report.duration:.1f} s",
            "",
        ]

        ranked = self._ranked(report)
        if ranked:
            lines.extend([
                f"  {'#':>4}  {'IP Address':<18} {'Pings (ms)':<20} {'Avg':>6}  Grade",
                "  " + "-" * 60,
            ])
            for position, outcome in enumerate(ranked, 1):
                pings = ", ".join(str(v) for v in outcome.latencies)
                lines.append(f"  {position:>4}  {str(outcome.address):<18} {pings:<20} "
                             f"{outcome.rounded_mean:>6}  {latency_grade(outcome.mean_ms)}")
        else:
            lines.append("  No suitable address found")

        lines.extend(["", "=" * 70])
        return "\n".join(lines)

    def _generate_json(self, report: ScanReport) -> str:
        full_report = {
            "metadata": {
                "generated_at": datetime.now().isoformat(),
                "config": self.config.to_dict(),
                "scanner_version": __version__,
            },
            "summary": {
                "status": report.status.value,
                "reason": report.reason,
                "tested": report.tested,
                "total": report.total,
                "found": report.found,
                "duration_seconds": round(report.duration, 2),
            },
            "results": [outcome.to_dict() for outcome in self._ranked(report)],
        }
        return json.dumps(full_report, indent=2, ensure_ascii=False)

    def _generate_csv(self, report: ScanReport) -> str:
        store = report.results if report.results is not None else ResultStore(self.config.attempts)
        if not self.config.top:
            return store.to_csv()

        trimmed = ResultStore(store.attempts)
        for outcome in self._ranked(report):
            trimmed.add(outcome)
        return trimmed.to_csv()

    def output_path(self, filepath: Optional[str] = None) -> Path:
        if filepath is None:
            filepath = self.config.output_file or default_output_name()
        return Path(filepath)

    def save_report(self, text: str, filepath: Optional[str] = None) -> bool:
        """
        Write a report to disk

        Args:
            text: Rendered report
            filepath: Target path, the configured or default name when omitted

        Returns:
            True on success
        """
        path = self.output_path(filepath)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8', newline='') as f:
                f.write(text)
            logger.info(f"Report saved to {path}")
            return True
        except OSError as e:
            logger.error(f"Error saving report: {e}")
            return False

