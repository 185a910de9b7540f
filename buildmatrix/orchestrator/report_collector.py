from typing import List, Optional
from datetime import datetime

from buildmatrix.common.config.constants import ExecutionOutcome, RunOutcome
from buildmatrix.common.config.logging_config import get_logger
from buildmatrix.common.dto.result import ExecutionResult, RunReport
from buildmatrix.common.exceptions.build_exceptions import ReportFinalizedError
from buildmatrix.common.utils.time_utils import utc_now


logger = get_logger(__name__)


class ReportCollector:
    def __init__(self):
        self._results: List[ExecutionResult] = []
        self._started_at: datetime = utc_now()
        self._report: Optional[RunReport] = None

    @property
    def results(self) -> List[ExecutionResult]:
        return list(self._results)

    @property
    def is_finalized(self) -> bool:
        return self._report is not None

    def record(self, result: ExecutionResult) -> None:
        if self._report is not None:
            raise ReportFinalizedError()

        self._results.append(result)
        logger.debug(f"Recorded {result.configuration_name}: {result.outcome.value}")

    def has_failures(self) -> bool:
        return any(r.outcome == ExecutionOutcome.FAILED for r in self._results)

    def finalize(
        self,
        aborted: bool = False,
        abort_reason: Optional[str] = None,
    ) -> RunReport:
        if self._report is not None:
            return self._report

        if aborted:
            outcome = RunOutcome.ABORTED
        elif self.has_failures():
            outcome = RunOutcome.SOME_FAILED
        else:
            outcome = RunOutcome.ALL_PASSED

        self._report = RunReport(
            results=tuple(self._results),
            overall_outcome=outcome,
            abort_reason=abort_reason if aborted else None,
            started_at=self._started_at,
            finished_at=utc_now(),
        )
        return self._report
