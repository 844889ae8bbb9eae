"""
Result storage and ranking
"""

import csv
import io
from typing import Iterator, List

from .models import ProbeOutcome


class ResultStore:
    """Append-only collection of found addresses"""

    def __init__(self, attempts: int = 3):
        self.attempts = attempts
        self._outcomes: List[ProbeOutcome] = []

    def add(self, outcome: ProbeOutcome) -> None:
        if not outcome.found:
            raise ValueError(f"{outcome.address} has no measurements")
        self._outcomes.append(outcome)

    @property
    def count(self) -> int:
        return len(self._outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self) -> Iterator[ProbeOutcome]:
        return iter(list(self._outcomes))

    def ranked(self) -> List[ProbeOutcome]:
        """Outcomes by ascending mean latency, equal means keep discovery order"""
        return sorted(self._outcomes, key=lambda outcome: outcome.mean_ms)

    def header(self) -> List[str]:
        pings = [f"Ping {i} (ms)" for i in range(1, self.attempts + 1)]
        return ["IP Address"] + pings + ["Average Ping (ms)"]

    def csv_row(self, outcome: ProbeOutcome) -> List[str]:
        """Address, one column per attempt (blank when missing), rounded average"""
        pings = [str(value) for value in outcome.latencies[:self.attempts]]
        pings += [""] * (self.attempts - len(pings))
        return [str(outcome.address)] + pings + [str(outcome.rounded_mean)]

    def csv_rows(self) -> List[List[str]]:
        return [self.csv_row(outcome) for outcome in self.ranked()]

    def to_csv(self) -> str:
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(self.header())
        writer.writerows(self.csv_rows())
        return output.getvalue()
