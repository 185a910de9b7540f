import asyncio
import signal
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Callable, Mapping, List, Sequence

import click

from buildmatrix.builder.environment_manager import EnvironmentManager
from buildmatrix.builder.process_runner import ExternalProcessRunner
from buildmatrix.builder.variant_executor import BuildVariantExecutor
from buildmatrix.common.config.constants import ALL_SELECTOR, FailurePolicy
from buildmatrix.common.config.settings import Settings, get_settings
from buildmatrix.common.config.logging_config import setup_logging, get_logger
from buildmatrix.common.dto.result import ExecutionResult, RunReport
from buildmatrix.common.exceptions.base_exceptions import BuildMatrixError
from buildmatrix.orchestrator.coordinator import Orchestrator, Selection
from buildmatrix.orchestrator.registry import ConfigurationRegistry
from buildmatrix.orchestrator.report_collector import ReportCollector
from buildmatrix.orchestrator.report_formatter import ReportFormatter
from buildmatrix.orchestrator.variants import create_default_registry, default_configurations
from buildmatrix.tools.procedures import PROCEDURES
from buildmatrix.tools.version_control import VersionControl, working_directory


logger = get_logger(__name__)


def _default_runner(settings: Settings) -> ExternalProcessRunner:
    return ExternalProcessRunner(default_timeout=settings.process_timeout_seconds)


@dataclass
class CliContext:
    settings: Optional[Settings] = None
    registry_factory: Callable[[], ConfigurationRegistry] = create_default_registry
    runner_factory: Callable[[Settings], ExternalProcessRunner] = _default_runner
    environment_source: Optional[Mapping[str, str]] = None
    configure_logging: bool = True
    report_file: Optional[Path] = None
    formatter: ReportFormatter = field(default_factory=ReportFormatter)
    reports: List[RunReport] = field(default_factory=list)

    def get_settings(self) -> Settings:
        if self.settings is None:
            self.settings = get_settings()
        return self.settings


class CommandError(click.UsageError):
    exit_code = 1


class MatrixCommand(click.Command):
    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            raise CommandError(e.message, ctx=ctx) from e


class MatrixGroup(click.Group):
    command_class = MatrixCommand

    def list_commands(self, ctx: click.Context) -> List[str]:
        return list(self.commands)

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            raise CommandError(e.message, ctx=ctx) from e

    def resolve_command(self, ctx: click.Context, args: List[str]):
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            raise CommandError(e.message, ctx=ctx) from e


@click.group(
    cls=MatrixGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Override the configured log level")
@click.option("--json-logs/--text-logs", default=None, help="Log as JSON lines")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True),
              help="Kill any external step running longer than this many seconds")
@click.option("--logs-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Keep per-configuration phase logs under this directory")
@click.option("--report-file", type=click.Path(dir_okay=False, path_type=Path),
              help="Write the final report as JSON")
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: Optional[str],
    json_logs: Optional[bool],
    timeout: Optional[float],
    logs_dir: Optional[Path],
    report_file: Optional[Path],
) -> None:
    """Rebuild and test the project under each build variant."""
    context = ctx.ensure_object(CliContext)
    settings = context.get_settings()

    updates = {}
    if log_level:
        updates["log_level"] = log_level.upper()
    if json_logs is not None:
        updates["json_logs"] = json_logs
    if timeout is not None:
        updates["process_timeout_seconds"] = timeout
    if logs_dir is not None:
        updates["log_dir"] = str(logs_dir)
    if updates:
        settings = settings.model_copy(update=updates)
    context.settings = settings
    if report_file is not None:
        context.report_file = report_file

    if context.configure_logging:
        setup_logging(
            log_level=settings.log_level,
            json_format=settings.json_logs,
            log_dir=settings.log_dir,
        )

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(1)


@cli.command("help")
@click.pass_context
def show_help(ctx: click.Context) -> None:
    """Show this message."""
    # same exit status as running without a command
    click.echo(ctx.parent.get_help())
    ctx.exit(1)


@cli.command("list")
@click.pass_obj
def list_configurations(context: CliContext) -> None:
    """List the registered build variants."""
    registry = context.registry_factory()
    for config in registry.list_all():
        marker = "*" if config.include_in_all else " "
        click.echo(f"{marker} {config.name:<12} {config.description}")
        if config.configure_flags:
            click.echo(f"      flags: {' '.join(config.configure_flags)}")
        for key, value in config.environment_overrides.items():
            click.echo(f"      env:   {key}={value}")
    click.echo("\n* part of 'all'")


def _echo_failure(context: CliContext) -> Callable[[ExecutionResult], None]:
    def listener(result: ExecutionResult) -> None:
        if result.is_failed:
            click.echo(context.formatter.format_failure(result))
    return listener


async def _locate_root(runner: ExternalProcessRunner, env: Mapping[str, str]) -> Path:
    vcs = VersionControl(runner, env, Path.cwd())
    return await vcs.locate_root()


async def run_variants(
    context: CliContext,
    selection: Selection,
    policy: Optional[FailurePolicy] = None,
) -> RunReport:
    settings = context.get_settings()
    environment_manager = EnvironmentManager(context.environment_source)
    runner = context.runner_factory(settings)
    snapshot = environment_manager.capture_snapshot()
    root = await _locate_root(runner, snapshot.merged())
    logger.debug(f"Host: {environment_manager.get_system_info()}")

    with working_directory(root):
        executor = BuildVariantExecutor(
            runner,
            root,
            settings=settings,
            logs_dir=Path(settings.log_dir) if settings.log_dir else None,
        )
        orchestrator = Orchestrator(
            context.registry_factory(),
            executor,
            snapshot,
            on_result=_echo_failure(context),
        )

        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, orchestrator.cancel, f"received {sig.name}")
                installed.append(sig)
            except (NotImplementedError, RuntimeError, ValueError):
                logger.debug(f"Cannot install handler for {sig.name}")

        try:
            return await orchestrator.run_selected(selection, policy)
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)


async def run_procedure(context: CliContext, name: str, args: Sequence[str]) -> RunReport:
    settings = context.get_settings()
    runner = context.runner_factory(settings)
    snapshot = EnvironmentManager(context.environment_source).capture_snapshot()
    root = await _locate_root(runner, snapshot.merged())

    with working_directory(root):
        procedure = PROCEDURES[name](runner, root, snapshot, settings=settings)
        result = await procedure.run(*args)

    if result.is_failed:
        click.echo(context.formatter.format_failure(result))

    collector = ReportCollector()
    collector.record(result)
    return collector.finalize()


def _finish(ctx: click.Context, report: RunReport) -> None:
    context: CliContext = ctx.obj
    context.reports.append(report)

    click.echo(context.formatter.format_report(report))

    if context.report_file is not None:
        context.report_file.parent.mkdir(parents=True, exist_ok=True)
        context.report_file.write_text(report.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Report written to {context.report_file}")

    ctx.exit(report.exit_code)


def _execute(ctx: click.Context, coroutine) -> None:
    try:
        report = asyncio.run(coroutine)
    except BuildMatrixError as e:
        logger.error(f"{e.message}", extra={"error": e.to_dict()})
        click.echo(f"Error: {e.message}", err=True)
        ctx.exit(1)
    _finish(ctx, report)


def _make_variant_command(name: str, description: str) -> click.Command:
    @click.pass_context
    def command(ctx: click.Context) -> None:
        _execute(ctx, run_variants(ctx.obj, [name]))

    return MatrixCommand(
        name,
        callback=command,
        help=f"Check the '{name}' variant: {description}." if description else f"Check the '{name}' variant.",
    )


for _config in default_configurations():
    cli.add_command(_make_variant_command(_config.name, _config.description))


def _make_procedure_command(name: str) -> click.Command:
    procedure = PROCEDURES[name]
    params = [click.Argument([arg]) for arg in procedure.arg_names]

    @click.pass_context
    def command(ctx: click.Context, **kwargs: str) -> None:
        args = [kwargs[arg] for arg in procedure.arg_names]
        _execute(ctx, run_procedure(ctx.obj, name, args))

    return MatrixCommand(
        name,
        callback=command,
        params=params,
        help=(procedure.__doc__ or f"Run {name}.").strip().splitlines()[0],
    )


for _name in PROCEDURES:
    cli.add_command(_make_procedure_command(_name))


@cli.command(ALL_SELECTOR)
@click.option("--stop-on-failure", is_flag=True, help="Stop at the first failing variant")
@click.pass_context
def check_all(ctx: click.Context, stop_on_failure: bool) -> None:
    """Check every variant in the default sequence."""
    policy = FailurePolicy.STOP_ON_FIRST_FAILURE if stop_on_failure else None
    _execute(ctx, run_variants(ctx.obj, ALL_SELECTOR, policy))


def main() -> None:
    cli(prog_name="buildmatrix")


if __name__ == "__main__":
    main()
