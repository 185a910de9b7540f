from typing import List, Optional

from buildmatrix.common.config.constants import RunOutcome
from buildmatrix.common.dto.result import ExecutionResult, RunReport
from buildmatrix.common.utils.time_utils import format_millis


class ReportFormatter:
    def format_failure(self, result: ExecutionResult, include_excerpt: bool = True) -> str:
        lines = []

        if include_excerpt and result.log_excerpt:
            lines.append(result.log_excerpt.rstrip("\n"))

        if result.failed_tests:
            lines.append(f"Failing tests: {', '.join(result.failed_tests)}")

        lines.append(self.format_banner(result))
        return "\n".join(lines)

    def format_banner(self, result: ExecutionResult) -> str:
        phase = result.failed_phase.value if result.failed_phase else "run"
        return f"*** {result.configuration_name} FAILED ({phase}, exit {result.exit_code}) ***"

    def format_report(self, report: RunReport) -> str:
        rows = [
            [
                r.configuration_name,
                r.outcome.value.upper(),
                str(r.exit_code),
                r.failed_phase.value if r.failed_phase else "",
                format_millis(r.duration_millis),
            ]
            for r in report.results
        ]

        lines = [
            self.create_table(
                ["configuration", "outcome", "exit", "phase", "duration"],
                rows,
            ),
            "",
            self.format_summary(report),
        ]
        return "\n".join(lines)

    def format_summary(self, report: RunReport) -> str:
        counts = (
            f"{len(report.passed)} passed, {len(report.failed)} failed, "
            f"{len(report.skipped)} skipped"
        )
        if report.overall_outcome == RunOutcome.ABORTED:
            reason = f": {report.abort_reason}" if report.abort_reason else ""
            return f"ABORTED{reason} ({counts})"
        if report.overall_outcome == RunOutcome.SOME_FAILED:
            failed = ", ".join(r.configuration_name for r in report.failed)
            return f"FAILED: {failed} ({counts})"
        return f"ALL PASSED ({counts})"

    def create_table(
        self,
        headers: List[str],
        rows: List[List[str]],
        alignment: Optional[List[str]] = None,
    ) -> str:
        if not headers:
            return ""

        if alignment is None:
            alignment = ["left"] * len(headers)

        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row[:len(headers)]):
                widths[i] = max(widths[i], len(cell))

        def render(cells: List[str]) -> str:
            padded = cells + [""] * (len(headers) - len(cells))
            rendered = []
            for cell, width, align in zip(padded, widths, alignment):
                rendered.append(cell.rjust(width) if align == "right" else cell.ljust(width))
            return "  ".join(rendered).rstrip()

        separator = "  ".join("-" * w for w in widths)
        return "\n".join([render(headers), separator, *(render(row) for row in rows)])
