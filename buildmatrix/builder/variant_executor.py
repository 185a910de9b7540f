from typing import Optional, Dict, Any, List, Callable, Awaitable
from dataclasses import dataclass, field
from pathlib import Path

from buildmatrix.builder.environment_manager import EnvironmentManager
from buildmatrix.builder.log_parser import LogParser
from buildmatrix.builder.process_runner import ExternalProcessRunner, ProcessResult, describe_command
from buildmatrix.common.config.constants import (
    BuildPhase,
    ExecutionOutcome,
    PROCESS_SPAWN_EXIT_CODE,
    PROCESS_TIMEOUT_EXIT_CODE,
)
from buildmatrix.common.config.settings import Settings, get_settings
from buildmatrix.common.config.logging_config import get_variant_logger
from buildmatrix.common.dto.configuration import Configuration
from buildmatrix.common.dto.environment import EnvironmentSnapshot
from buildmatrix.common.dto.result import ExecutionResult
from buildmatrix.common.exceptions.build_exceptions import (
    BuildFailure,
    TestFailure,
    PhaseFailure,
    PrerequisiteMissingError,
)
from buildmatrix.common.exceptions.process_exceptions import (
    ProcessError,
    ProcessSpawnError,
    ProcessTimeoutError,
)
from buildmatrix.common.utils.file_utils import tail_text
from buildmatrix.common.utils.time_utils import Timer


@dataclass
class VariantExecutionContext:
    configuration: Configuration
    work_dir: Path
    environment: Dict[str, str]
    logs_dir: Optional[Path] = None
    current_phase: BuildPhase = BuildPhase.CONFIGURE
    phase_outputs: Dict[str, Any] = field(default_factory=dict)

    def get_phase_log_path(self, phase: BuildPhase) -> Optional[Path]:
        if self.logs_dir is None:
            return None
        return self.logs_dir / self.configuration.name / f"{phase.value}.log"


class BuildVariantExecutor:
    """Drives configure and build+test for one configuration.

    Every outcome of the external steps is folded into an ``ExecutionResult``.
    The one exception that leaves ``execute`` is ``PrerequisiteMissingError``,
    raised before anything is spawned so the caller can abort the run.
    """

    def __init__(
        self,
        runner: ExternalProcessRunner,
        work_dir: Path,
        settings: Optional[Settings] = None,
        environment_manager: Optional[EnvironmentManager] = None,
        log_parser: Optional[LogParser] = None,
        logs_dir: Optional[Path] = None,
    ):
        self._runner = runner
        self._work_dir = Path(work_dir)
        self._settings = settings or get_settings()
        self._environment_manager = environment_manager or EnvironmentManager()
        self._log_parser = log_parser or LogParser(self._settings.log_excerpt_max_chars)
        self._logs_dir = Path(logs_dir) if logs_dir else None
        self._phase_handlers: Dict[BuildPhase, Callable[[VariantExecutionContext], Awaitable[None]]] = {
            BuildPhase.CONFIGURE: self._execute_configure,
            BuildPhase.CHECK: self._execute_check,
        }

    @property
    def work_dir(self) -> Path:
        return self._work_dir

    async def execute(
        self,
        config: Configuration,
        env: EnvironmentSnapshot,
    ) -> ExecutionResult:
        logger = get_variant_logger(config.name)
        effective_env = env.merged(config.environment_overrides)

        skipped = self._check_prerequisites(config, effective_env)
        if skipped is not None:
            return skipped

        context = VariantExecutionContext(
            configuration=config,
            work_dir=self._work_dir,
            environment=effective_env,
            logs_dir=self._logs_dir,
        )

        timer = Timer().start()
        logger.info(f"Checking {config.name} with configure flags: {' '.join(self._configure_args(config))}")

        try:
            for phase in (BuildPhase.CONFIGURE, BuildPhase.CHECK):
                context.current_phase = phase
                logger.debug(f"{config.name}: starting phase {phase.value}")
                await self._phase_handlers[phase](context)
        except TestFailure as e:
            timer.stop()
            logger.error(f"{config.name} failed during build+test (exit {e.exit_code})")
            return self._failed_result(config, e, timer, failed_tests=e.failed_tests)
        except BuildFailure as e:
            timer.stop()
            logger.error(f"{config.name} failed during {e.phase} (exit {e.exit_code})")
            return self._failed_result(config, e, timer)
        except ProcessTimeoutError as e:
            timer.stop()
            logger.error(f"{config.name}: {e.message}")
            return self._process_error_result(config, context, e, PROCESS_TIMEOUT_EXIT_CODE, timer)
        except ProcessSpawnError as e:
            timer.stop()
            logger.error(f"{config.name}: {e.message}")
            return self._process_error_result(config, context, e, PROCESS_SPAWN_EXIT_CODE, timer)

        timer.stop()
        logger.info(f"{config.name} passed in {timer.elapsed_formatted}")
        return ExecutionResult(
            configuration_name=config.name,
            outcome=ExecutionOutcome.PASSED,
            exit_code=0,
            duration_millis=timer.elapsed_millis,
        )

    def _check_prerequisites(
        self,
        config: Configuration,
        effective_env: Dict[str, str],
    ) -> Optional[ExecutionResult]:
        missing = self._environment_manager.find_missing_tools(config.required_tools, effective_env)
        if not missing:
            return None

        if not config.skip_on_missing_tool:
            raise PrerequisiteMissingError(missing[0], configuration=config.name)

        logger = get_variant_logger(config.name)
        logger.warning(f"Skipping {config.name}: missing required tool(s) {', '.join(missing)}")
        return ExecutionResult(
            configuration_name=config.name,
            outcome=ExecutionOutcome.SKIPPED,
            exit_code=0,
            log_excerpt=f"missing required tool(s): {', '.join(missing)}",
        )

    async def _execute_configure(self, context: VariantExecutionContext) -> None:
        config = context.configuration
        configure_command = self._settings.configure_command
        bootstrap = self._settings.bootstrap_command

        if bootstrap and not (context.work_dir / configure_command).exists():
            result = await self._run(context, BuildPhase.BOOTSTRAP, bootstrap, [])
            if not result.succeeded:
                raise BuildFailure(
                    config.name,
                    BuildPhase.BOOTSTRAP.value,
                    result.exit_code,
                    log_excerpt=self._output_excerpt(result),
                )

        args = self._configure_args(config)
        result = await self._run(context, BuildPhase.CONFIGURE, configure_command, args)
        context.phase_outputs["configure"] = {"args": args, "exit_code": result.exit_code}

        if not result.succeeded:
            raise BuildFailure(
                config.name,
                BuildPhase.CONFIGURE.value,
                result.exit_code,
                log_excerpt=self._output_excerpt(result),
            )

    async def _execute_check(self, context: VariantExecutionContext) -> None:
        config = context.configuration
        test_log = context.work_dir / self._settings.test_log_path

        # A log left by a previous variant in the same tree must not be reported.
        if test_log.is_file():
            test_log.unlink()

        targets = list(config.build_targets)
        result = await self._run(context, BuildPhase.CHECK, self._settings.make_command, targets)
        context.phase_outputs["check"] = {"targets": targets, "exit_code": result.exit_code}

        if result.succeeded:
            return

        parsed = self._log_parser.parse_file(test_log)
        if parsed is None:
            get_variant_logger(config.name).warning(f"No diagnostic log at {test_log}")
            raise TestFailure(config.name, BuildPhase.CHECK.value, result.exit_code)

        get_variant_logger(config.name).info(f"Test summary: {self._log_parser.get_summary(parsed)}")
        raise TestFailure(
            config.name,
            BuildPhase.CHECK.value,
            result.exit_code,
            log_excerpt=self._log_parser.excerpt(parsed),
            failed_tests=parsed.failed_tests,
        )

    async def _run(
        self,
        context: VariantExecutionContext,
        phase: BuildPhase,
        command: str,
        args: List[str],
    ) -> ProcessResult:
        logger = get_variant_logger(context.configuration.name, phase.value)
        logger.debug(describe_command(command, args, context.configuration.environment_overrides))
        return await self._runner.run(
            command,
            args,
            env=context.environment,
            cwd=context.work_dir,
            timeout=self._settings.process_timeout_seconds,
            log_path=context.get_phase_log_path(phase),
        )

    def _configure_args(self, config: Configuration) -> List[str]:
        return [*config.configure_flags, *self._settings.baseline_configure_flags]

    def _output_excerpt(self, result: ProcessResult) -> Optional[str]:
        if not result.combined_output.strip():
            return None
        return tail_text(result.combined_output, self._settings.log_excerpt_max_chars)

    def _failed_result(
        self,
        config: Configuration,
        failure: PhaseFailure,
        timer: Timer,
        failed_tests: Optional[List[str]] = None,
    ) -> ExecutionResult:
        return ExecutionResult(
            configuration_name=config.name,
            outcome=ExecutionOutcome.FAILED,
            exit_code=failure.exit_code,
            log_excerpt=failure.log_excerpt,
            duration_millis=timer.elapsed_millis,
            failed_phase=BuildPhase(failure.phase),
            failed_tests=tuple(failed_tests or ()),
            error_code=failure.error_code.value,
        )

    def _process_error_result(
        self,
        config: Configuration,
        context: VariantExecutionContext,
        error: ProcessError,
        exit_code: int,
        timer: Timer,
    ) -> ExecutionResult:
        return ExecutionResult(
            configuration_name=config.name,
            outcome=ExecutionOutcome.FAILED,
            exit_code=exit_code,
            log_excerpt=str(error),
            duration_millis=timer.elapsed_millis,
            failed_phase=context.current_phase,
            error_code=error.error_code.value,
        )
