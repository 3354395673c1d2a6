"""
Conformance reports: a JSON document for tooling and a plain-text summary.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from comparator import ComparisonResult, Divergence

RULE = "=" * 60


@dataclass
class VectorResult:
    vector_name: str
    suite_name: str
    passed: bool
    execution_time_ms: float
    skipped: bool = False
    comparison: Optional[ComparisonResult] = None
    error: Optional[str] = None

    @property
    def counted(self) -> bool:
        return not self.skipped


@dataclass
class SuiteResult:
    """Results of one vector file."""
    suite_name: str
    execution_time_ms: float
    vector_results: List[VectorResult] = field(default_factory=list)

    @property
    def total_tests(self) -> int:
        return sum(r.counted for r in self.vector_results)

    @property
    def passed_tests(self) -> int:
        return sum(r.counted and r.passed for r in self.vector_results)

    @property
    def failed_tests(self) -> int:
        return self.total_tests - self.passed_tests

    @property
    def skipped_tests(self) -> int:
        return len(self.vector_results) - self.total_tests

    @property
    def pass_rate(self) -> float:
        return self.passed_tests / self.total_tests * 100 if self.total_tests else 0.0

    @property
    def divergences(self) -> List[Divergence]:
        return [
            d
            for r in self.vector_results
            if r.comparison is not None
            for d in r.comparison.divergences
        ]


@dataclass
class ConformanceReport:
    timestamp: str
    clients: List[str]
    reference_client: str
    execution_time_ms: float
    suite_results: List[SuiteResult]

    @property
    def divergences(self) -> List[Divergence]:
        return [d for s in self.suite_results for d in s.divergences]

    @property
    def total_tests(self) -> int:
        return sum(s.total_tests for s in self.suite_results)

    @property
    def total_passed(self) -> int:
        return sum(s.passed_tests for s in self.suite_results)

    @property
    def total_failed(self) -> int:
        return sum(s.failed_tests for s in self.suite_results)

    @property
    def total_skipped(self) -> int:
        return sum(s.skipped_tests for s in self.suite_results)

    @property
    def passed(self) -> bool:
        return self.total_failed == 0


class ReportGenerator:
    """Writes conformance reports into a result directory."""

    def __init__(self, result_dir: str):
        self.result_dir = result_dir
        os.makedirs(result_dir, exist_ok=True)

    def generate_report(
        self,
        suite_results: List[SuiteResult],
        clients: List[str],
        reference_client: str,
        execution_time_ms: float,
    ) -> ConformanceReport:
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
        return ConformanceReport(
            timestamp=stamp,
            clients=clients,
            reference_client=reference_client,
            execution_time_ms=execution_time_ms,
            suite_results=suite_results,
        )

    def to_dict(self, report: ConformanceReport) -> Dict[str, Any]:
        return {
            "timestamp": report.timestamp,
            "clients": report.clients,
            "reference_client": report.reference_client,
            "execution_time_ms": report.execution_time_ms,
            "totals": {
                "suites": len(report.suite_results),
                "tests": report.total_tests,
                "passed": report.total_passed,
                "failed": report.total_failed,
                "skipped": report.total_skipped,
                "divergences": len(report.divergences),
            },
            "suites": [
                {
                    "suite_name": s.suite_name,
                    "passed": s.passed_tests,
                    "failed": s.failed_tests,
                    "skipped": s.skipped_tests,
                    "pass_rate": round(s.pass_rate, 2),
                    "execution_time_ms": s.execution_time_ms,
                    "failures": [
                        {"vector": r.vector_name, "error": r.error}
                        for r in s.vector_results
                        if r.counted and not r.passed
                    ],
                }
                for s in report.suite_results
            ],
            # Expected/actual values may be bytes-like or nested; keep them readable.
            "divergences": [
                {**asdict(d), "expected": str(d.expected), "actual": str(d.actual)}
                for d in report.divergences
            ],
        }

    def write_json_report(self, report: ConformanceReport, filename: str = "conformance-report.json") -> str:
        path = os.path.join(self.result_dir, filename)
        with open(path, "w") as f:
            json.dump(self.to_dict(report), f, indent=2)
        return path

    def summary_lines(self, report: ConformanceReport, max_divergences: Optional[int] = None) -> List[str]:
        lines = [
            RULE,
            "Escrow Conformance Report",
            RULE,
            f"Timestamp:  {report.timestamp}",
            f"Clients:    {', '.join(report.clients)} (reference: {report.reference_client})",
            f"Tests:      {report.total_tests} run, {report.total_passed} passed, "
            f"{report.total_failed} failed, {report.total_skipped} skipped",
            f"Duration:   {report.execution_time_ms:.2f}ms",
            "",
        ]
        for suite in report.suite_results:
            status = "PASS" if suite.failed_tests == 0 else "FAIL"
            lines.append(
                f"  [{status}] {suite.suite_name}: {suite.passed_tests}/{suite.total_tests} "
                f"({suite.pass_rate:.1f}%)"
            )

        divergences = report.divergences
        if divergences:
            lines += ["", f"Divergences ({len(divergences)}):"]
            for div in divergences[:max_divergences]:
                lines.append(f"  - {div.vector_name} [{div.field}] {div.client} vs {div.reference_client}")
                lines.append(f"      expected {div.expected!r}, got {div.actual!r}")
                if div.details:
                    lines.append(f"      {div.details}")
            if max_divergences is not None and len(divergences) > max_divergences:
                lines.append(f"  ... and {len(divergences) - max_divergences} more")

        lines += ["", f"Overall: {'PASSED' if report.passed else 'FAILED'}", RULE]
        return lines

    def write_summary(self, report: ConformanceReport, filename: str = "conformance-summary.txt") -> str:
        path = os.path.join(self.result_dir, filename)
        with open(path, "w") as f:
            f.write("\n".join(self.summary_lines(report)) + "\n")
        return path

    def print_summary(self, report: ConformanceReport) -> None:
        print("\n".join(self.summary_lines(report, max_divergences=10)))
