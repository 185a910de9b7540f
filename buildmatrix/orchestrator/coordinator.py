from typing import Optional, List, Sequence, Union, Callable

from buildmatrix.builder.variant_executor import BuildVariantExecutor
from buildmatrix.common.config.constants import (
    ALL_SELECTOR,
    FailurePolicy,
    RunOutcome,
    RunState,
)
from buildmatrix.common.config.logging_config import get_logger
from buildmatrix.common.dto.configuration import Configuration
from buildmatrix.common.dto.environment import EnvironmentSnapshot
from buildmatrix.common.dto.result import ExecutionResult, RunReport
from buildmatrix.common.exceptions.build_exceptions import (
    OrchestratorStateError,
    PrerequisiteMissingError,
)
from buildmatrix.orchestrator.registry import ConfigurationRegistry
from buildmatrix.orchestrator.report_collector import ReportCollector


logger = get_logger(__name__)

Selection = Union[str, Sequence[str]]
ResultListener = Callable[[ExecutionResult], None]


class Orchestrator:
    """Runs selected configurations one after another.

    Variants share one build tree, so they never run concurrently. The
    ``all`` selection keeps going after a failure; an explicit list of names
    stops at the first one unless a policy is passed.
    """

    def __init__(
        self,
        registry: ConfigurationRegistry,
        executor: BuildVariantExecutor,
        environment: EnvironmentSnapshot,
        on_result: Optional[ResultListener] = None,
    ):
        self._registry = registry
        self._executor = executor
        self._environment = environment
        self._on_result = on_result
        self._state = RunState.IDLE
        self._cancel_reason: Optional[str] = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def environment(self) -> EnvironmentSnapshot:
        return self._environment

    def cancel(self, reason: str = "cancelled") -> None:
        if self._state != RunState.RUNNING:
            logger.debug(f"Ignoring cancel request in state {self._state.value}")
            return
        logger.warning(f"Cancellation requested: {reason}")
        self._cancel_reason = reason

    def resolve(self, selection: Selection) -> List[Configuration]:
        if isinstance(selection, str):
            selection = [selection]

        if list(selection) == [ALL_SELECTOR]:
            return self._registry.list_default()

        resolved: List[Configuration] = []
        for name in selection:
            config = self._registry.get(name)
            if config not in resolved:
                resolved.append(config)
        return resolved

    def default_policy(self, selection: Selection) -> FailurePolicy:
        if isinstance(selection, str):
            selection = [selection]
        if list(selection) == [ALL_SELECTOR]:
            return FailurePolicy.CONTINUE_ON_FAILURE
        return FailurePolicy.STOP_ON_FIRST_FAILURE

    async def run_selected(
        self,
        selection: Selection,
        policy: Optional[FailurePolicy] = None,
    ) -> RunReport:
        if self._state == RunState.RUNNING:
            raise OrchestratorStateError("A run is already in progress", state=self._state.value)

        configurations = self.resolve(selection)
        policy = policy or self.default_policy(selection)

        self._state = RunState.RUNNING
        self._cancel_reason = None
        collector = ReportCollector()
        logger.info(
            f"Running {len(configurations)} configuration(s) "
            f"[{', '.join(c.name for c in configurations)}] with policy {policy.value}"
        )

        try:
            report = await self._run_sequence(configurations, policy, collector)
        except BaseException:
            self._state = RunState.ABORTED
            raise

        self._state = (
            RunState.ABORTED if report.overall_outcome == RunOutcome.ABORTED else RunState.COMPLETED
        )
        logger.info(
            f"Run finished: {report.overall_outcome.value} "
            f"({len(report.passed)} passed, {len(report.failed)} failed, {len(report.skipped)} skipped)"
        )
        return report

    async def _run_sequence(
        self,
        configurations: List[Configuration],
        policy: FailurePolicy,
        collector: ReportCollector,
    ) -> RunReport:
        for config in configurations:
            if self._cancel_reason is not None:
                return collector.finalize(aborted=True, abort_reason=self._cancel_reason)

            try:
                result = await self._executor.execute(config, self._environment)
            except PrerequisiteMissingError as e:
                logger.error(f"Aborting run: {e.message}")
                return collector.finalize(aborted=True, abort_reason=e.message)

            collector.record(result)
            if self._on_result is not None:
                self._on_result(result)

            if result.is_failed and policy == FailurePolicy.STOP_ON_FIRST_FAILURE:
                logger.info(f"Stopping after first failure ({config.name})")
                break

        # a request that arrived during the last configuration still aborts
        if self._cancel_reason is not None:
            return collector.finalize(aborted=True, abort_reason=self._cancel_reason)
        return collector.finalize()
