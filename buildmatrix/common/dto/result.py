from datetime import datetime
from typing import Optional, List, Tuple

from pydantic import Field, computed_field

from buildmatrix.common.dto.base import BaseDTO
from buildmatrix.common.config.constants import (
    BuildPhase,
    ExecutionOutcome,
    RunOutcome,
)


class ExecutionResult(BaseDTO):
    configuration_name: str
    outcome: ExecutionOutcome
    exit_code: int = Field(default=0)
    log_excerpt: Optional[str] = None
    duration_millis: int = Field(default=0, ge=0)
    failed_phase: Optional[BuildPhase] = None
    failed_tests: Tuple[str, ...] = Field(default_factory=tuple)
    error_code: Optional[str] = None

    @property
    def is_passed(self) -> bool:
        return self.outcome == ExecutionOutcome.PASSED

    @property
    def is_failed(self) -> bool:
        return self.outcome == ExecutionOutcome.FAILED

    @property
    def is_skipped(self) -> bool:
        return self.outcome == ExecutionOutcome.SKIPPED


class RunReport(BaseDTO):
    results: Tuple[ExecutionResult, ...] = Field(default_factory=tuple)
    overall_outcome: RunOutcome
    abort_reason: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def passed(self) -> List[ExecutionResult]:
        return [r for r in self.results if r.is_passed]

    @property
    def failed(self) -> List[ExecutionResult]:
        return [r for r in self.results if r.is_failed]

    @property
    def skipped(self) -> List[ExecutionResult]:
        return [r for r in self.results if r.is_skipped]

    @computed_field
    @property
    def exit_code(self) -> int:
        return 0 if self.overall_outcome == RunOutcome.ALL_PASSED else 1

    @computed_field
    @property
    def total_duration_millis(self) -> int:
        return sum(r.duration_millis for r in self.results)

    def get(self, configuration_name: str) -> Optional[ExecutionResult]:
        for result in self.results:
            if result.configuration_name == configuration_name:
                return result
        return None
