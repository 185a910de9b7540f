"""
Report collection and formatting tests.
"""

import pytest

from buildmatrix.common.config.constants import BuildPhase, ExecutionOutcome, RunOutcome
from buildmatrix.common.dto.result import ExecutionResult
from buildmatrix.common.exceptions import ReportFinalizedError
from buildmatrix.orchestrator.report_collector import ReportCollector
from buildmatrix.orchestrator.report_formatter import ReportFormatter


def make_result(name, outcome=ExecutionOutcome.PASSED, exit_code=0, **kwargs):
    return ExecutionResult(configuration_name=name, outcome=outcome, exit_code=exit_code, **kwargs)


class TestReportCollector:
    """Test result collection and finalization."""

    def test_empty_collector_passes(self):
        report = ReportCollector().finalize()

        assert report.results == ()
        assert report.overall_outcome == RunOutcome.ALL_PASSED

    def test_keeps_record_order(self):
        collector = ReportCollector()
        for name in ("b", "a", "c"):
            collector.record(make_result(name))

        assert [r.configuration_name for r in collector.finalize().results] == ["b", "a", "c"]

    def test_failure_sets_outcome(self):
        collector = ReportCollector()
        collector.record(make_result("a"))
        collector.record(make_result("b", ExecutionOutcome.FAILED, 2))

        assert collector.has_failures()
        assert collector.finalize().overall_outcome == RunOutcome.SOME_FAILED

    def test_abort_wins_over_failures(self):
        collector = ReportCollector()
        collector.record(make_result("b", ExecutionOutcome.FAILED, 2))

        report = collector.finalize(aborted=True, abort_reason="received SIGTERM")

        assert report.overall_outcome == RunOutcome.ABORTED
        assert report.abort_reason == "received SIGTERM"

    def test_finalize_is_idempotent(self):
        collector = ReportCollector()
        collector.record(make_result("a"))

        first = collector.finalize()
        second = collector.finalize(aborted=True)

        assert second is first
        assert collector.is_finalized

    def test_record_after_finalize_raises(self):
        collector = ReportCollector()
        collector.finalize()

        with pytest.raises(ReportFinalizedError):
            collector.record(make_result("late"))

    def test_report_times(self):
        report = ReportCollector().finalize()
        assert report.started_at <= report.finished_at


class TestReportFormatter:
    """Test console rendering."""

    def setup_method(self):
        self.formatter = ReportFormatter()

    def test_banner(self):
        result = make_result("sysv", ExecutionOutcome.FAILED, 2, failed_phase=BuildPhase.CHECK)
        assert self.formatter.format_banner(result) == "*** sysv FAILED (check, exit 2) ***"

    def test_banner_without_phase(self):
        result = make_result("sysv", ExecutionOutcome.FAILED, 1)
        assert self.formatter.format_banner(result) == "*** sysv FAILED (run, exit 1) ***"

    def test_failure_prints_excerpt_before_banner(self):
        result = make_result(
            "sysv", ExecutionOutcome.FAILED, 2,
            failed_phase=BuildPhase.CHECK,
            log_excerpt="FAIL: check_ipc\n",
            failed_tests=("check_ipc",),
        )

        lines = self.formatter.format_failure(result).splitlines()

        assert lines == [
            "FAIL: check_ipc",
            "Failing tests: check_ipc",
            "*** sysv FAILED (check, exit 2) ***",
        ]

    def test_summary(self):
        collector = ReportCollector()
        collector.record(make_result("ansi"))
        collector.record(make_result("sysv", ExecutionOutcome.FAILED, 2))
        collector.record(make_result("rpm", ExecutionOutcome.SKIPPED))

        summary = self.formatter.format_summary(collector.finalize())

        assert summary == "FAILED: sysv (1 passed, 1 failed, 1 skipped)"

    def test_summary_for_aborted_run(self):
        report = ReportCollector().finalize(aborted=True, abort_reason="received SIGINT")
        assert self.formatter.format_summary(report).startswith("ABORTED: received SIGINT")

    def test_report_table(self):
        collector = ReportCollector()
        collector.record(make_result("ansi", duration_millis=1500))
        collector.record(make_result("sysv", ExecutionOutcome.FAILED, 2, failed_phase=BuildPhase.CHECK))

        lines = self.formatter.format_report(collector.finalize()).splitlines()

        assert lines[0].split() == ["configuration", "outcome", "exit", "phase", "duration"]
        assert lines[2].split() == ["ansi", "PASSED", "0", "1.50s"]
        assert lines[3].split() == ["sysv", "FAILED", "2", "check", "0s"]
        assert lines[-1].startswith("FAILED: sysv")

    def test_create_table_alignment(self):
        table = self.formatter.create_table(["name", "n"], [["a", "10"], ["bb", "2"]], ["left", "right"])

        assert table.splitlines() == ["name   n", "----  --", "a     10", "bb     2"]
