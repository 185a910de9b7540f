from abc import ABC, abstractmethod
from typing import Optional, Dict, List, Tuple, Type
from pathlib import Path
import xml.etree.ElementTree as ET

from buildmatrix.builder.environment_manager import EnvironmentManager
from buildmatrix.builder.process_runner import ExternalProcessRunner, ProcessResult
from buildmatrix.common.config.constants import (
    BuildPhase,
    ExecutionOutcome,
    PrerequisitePolicy,
    PROCESS_SPAWN_EXIT_CODE,
    PROCESS_TIMEOUT_EXIT_CODE,
)
from buildmatrix.common.config.settings import Settings, get_settings
from buildmatrix.common.config.logging_config import get_variant_logger
from buildmatrix.common.dto.environment import EnvironmentSnapshot
from buildmatrix.common.dto.result import ExecutionResult
from buildmatrix.common.exceptions.build_exceptions import (
    BuildFailure,
    PrerequisiteMissingError,
)
from buildmatrix.common.exceptions.process_exceptions import (
    ProcessError,
    ProcessTimeoutError,
    VersionControlError,
)
from buildmatrix.common.utils.file_utils import ensure_directory, tail_text
from buildmatrix.common.utils.time_utils import Timer
from buildmatrix.tools.version_control import VersionControl
from buildmatrix.tools.viewer import ReportViewer


class ToolProcedure(ABC):
    """One-shot packaging or analysis run around an external tool.

    Subclasses declare the tools they need and implement ``_execute``; any
    non-zero step raises ``BuildFailure`` and ends up in the returned result.
    """

    name: str = ""
    tools: Tuple[str, ...] = ()
    prerequisite_policy: PrerequisitePolicy = PrerequisitePolicy.REQUIRE
    arg_names: Tuple[str, ...] = ()
    install_hint: Optional[str] = None

    def __init__(
        self,
        runner: ExternalProcessRunner,
        work_dir: Path,
        environment: EnvironmentSnapshot,
        settings: Optional[Settings] = None,
        environment_manager: Optional[EnvironmentManager] = None,
        version_control: Optional[VersionControl] = None,
        viewer: Optional[ReportViewer] = None,
    ):
        self._runner = runner
        self._work_dir = Path(work_dir)
        self._settings = settings or get_settings()
        self._env = environment.merged()
        self._environment_manager = environment_manager or EnvironmentManager()
        self._vcs = version_control or VersionControl(runner, self._env, self._work_dir)
        self._viewer = viewer or ReportViewer(runner, self._settings.browser, self._env)
        self._logger = get_variant_logger(self.name)
        self._current_phase = BuildPhase.CONFIGURE

    @property
    def library_name(self) -> str:
        return self._settings.library_name or self._work_dir.name

    def check_prerequisites(self) -> List[str]:
        missing = self._environment_manager.find_missing_tools(self.tools, self._env)
        if not missing:
            return []

        if self.prerequisite_policy == PrerequisitePolicy.REQUIRE:
            raise PrerequisiteMissingError(missing[0], configuration=self.name, hint=self.install_hint)

        for tool in missing:
            self._logger.warning(f"{tool} is not installed, {self.name} will most likely fail")
        return missing

    async def run(self, *args: str) -> ExecutionResult:
        if len(args) != len(self.arg_names):
            expected = " ".join(f"<{a}>" for a in self.arg_names) or "no arguments"
            raise ValueError(f"{self.name} expects {expected}")

        self.check_prerequisites()
        timer = Timer().start()
        self._current_phase = BuildPhase.CONFIGURE

        try:
            await self._execute(*args)
        except BuildFailure as e:
            timer.stop()
            self._logger.error(f"{self.name} failed during {e.phase} (exit {e.exit_code})")
            return self._result(ExecutionOutcome.FAILED, timer, e.exit_code, e.log_excerpt, BuildPhase(e.phase), e.error_code.value)
        except ProcessError as e:
            timer.stop()
            self._logger.error(f"{self.name}: {e.message}")
            exit_code = PROCESS_TIMEOUT_EXIT_CODE if isinstance(e, ProcessTimeoutError) else PROCESS_SPAWN_EXIT_CODE
            return self._result(ExecutionOutcome.FAILED, timer, exit_code, str(e), self._current_phase, e.error_code.value)
        except VersionControlError as e:
            timer.stop()
            self._logger.error(f"{self.name}: {e.message}")
            return self._result(ExecutionOutcome.FAILED, timer, 1, str(e), self._current_phase, e.error_code.value)

        timer.stop()
        self._logger.info(f"{self.name} passed in {timer.elapsed_formatted}")
        return self._result(ExecutionOutcome.PASSED, timer, 0)

    @abstractmethod
    async def _execute(self, *args: str) -> None:
        raise NotImplementedError("Subclasses must implement _execute")

    def _result(
        self,
        outcome: ExecutionOutcome,
        timer: Timer,
        exit_code: int,
        log_excerpt: Optional[str] = None,
        failed_phase: Optional[BuildPhase] = None,
        error_code: Optional[str] = None,
    ) -> ExecutionResult:
        return ExecutionResult(
            configuration_name=self.name,
            outcome=outcome,
            exit_code=exit_code,
            log_excerpt=log_excerpt,
            duration_millis=timer.elapsed_millis,
            failed_phase=failed_phase,
            error_code=error_code,
        )

    async def _step(
        self,
        phase: BuildPhase,
        command: str,
        args: List[str],
        cwd: Optional[Path] = None,
    ) -> ProcessResult:
        self._current_phase = phase
        self._logger.info(f"{self.name}: {command} {' '.join(args)}")
        result = await self._runner.run(
            command,
            args,
            env=self._env,
            cwd=cwd or self._work_dir,
            timeout=self._settings.process_timeout_seconds,
        )
        if not result.succeeded:
            raise BuildFailure(
                self.name,
                phase.value,
                result.exit_code,
                log_excerpt=self._excerpt(result.combined_output),
            )
        return result

    def _fail(self, phase: BuildPhase, message: str) -> None:
        raise BuildFailure(self.name, phase.value, 1, log_excerpt=message)

    def _excerpt(self, output: str) -> Optional[str]:
        if not output.strip():
            return None
        return tail_text(output, self._settings.log_excerpt_max_chars)

    async def _bootstrap(self, force: bool = False) -> None:
        bootstrap = self._settings.bootstrap_command
        configure_script = self._work_dir / self._settings.configure_command
        if bootstrap and (force or not configure_script.exists()):
            await self._step(BuildPhase.BOOTSTRAP, bootstrap, [])

    async def _configure(self, args: List[str], wrapper: Optional[str] = None) -> None:
        await self._bootstrap()
        if wrapper:
            await self._step(BuildPhase.CONFIGURE, wrapper, [self._settings.configure_command, *args])
        else:
            await self._step(BuildPhase.CONFIGURE, self._settings.configure_command, args)

    async def _make(self, phase: BuildPhase, *targets: str) -> ProcessResult:
        return await self._step(phase, self._settings.make_command, list(targets))


class MockProcedure(ToolProcedure):
    name = "mock"
    tools = ("mock", "rpmbuild")
    install_hint = "install the mock and rpm-build packages"

    async def _execute(self) -> None:
        await self._configure([])
        await self._make(BuildPhase.PACKAGE, "srpm")

        srpms = sorted(self._work_dir.glob("*.src.rpm"), key=lambda p: p.stat().st_mtime)
        if not srpms:
            self._fail(BuildPhase.PACKAGE, "make srpm produced no *.src.rpm")

        await self._step(BuildPhase.PACKAGE, "mock", ["--rebuild", str(srpms[-1])])


class CoverityProcedure(ToolProcedure):
    name = "coverity"
    tools = ("cov-build",)
    prerequisite_policy = PrerequisitePolicy.WARN

    async def _execute(self) -> None:
        await self._configure(list(self._settings.baseline_configure_flags))
        await self._make(BuildPhase.CHECK, "clean")
        await self._step(BuildPhase.ANALYZE, "cov-build", ["--dir", "cov-int", self._settings.make_command])

        archive = f"{self.library_name}-coverity.tgz"
        await self._step(BuildPhase.PACKAGE, "tar", ["czf", archive, "cov-int"])
        self._logger.info(f"Coverity results archived in {self._work_dir / archive}")


class ClangProcedure(ToolProcedure):
    name = "clang"
    tools = ("scan-build",)
    install_hint = "scan-build ships with the clang static analyzer"

    async def _execute(self) -> None:
        await self._configure(list(self._settings.baseline_configure_flags), wrapper="scan-build")
        await self._make(BuildPhase.CHECK, "clean")
        await self._step(
            BuildPhase.ANALYZE,
            "scan-build",
            ["-o", "clang-report", "--status-bugs", self._settings.make_command],
        )


class _InstalledTreeMixin:
    def _descriptor(self, version: str, destdir: Path) -> str:
        prefix = destdir / "usr"
        libdir = prefix / "lib"
        for candidate in ("lib64", "lib"):
            if (prefix / candidate).is_dir():
                libdir = prefix / candidate
                break

        parts = []
        for tag, text in (("version", version), ("headers", str(prefix / "include")), ("libs", str(libdir))):
            element = ET.Element(tag)
            element.text = text
            parts.append(ET.tostring(element, encoding="unicode"))
        return "\n".join(parts) + "\n"

    async def _build_and_install(self, destdir: Path, force_bootstrap: bool = False) -> None:
        await self._bootstrap(force=force_bootstrap)
        await self._step(BuildPhase.CONFIGURE, self._settings.configure_command, ["--prefix=/usr"])
        await self._make(BuildPhase.CHECK)
        await self._make(BuildPhase.INSTALL, "install", f"DESTDIR={destdir}")


class AbiProcedure(_InstalledTreeMixin, ToolProcedure):
    name = "abi"
    tools = ("abi-compliance-checker",)
    prerequisite_policy = PrerequisitePolicy.WARN
    arg_names = ("ver1", "ver2")

    async def _execute(self, old_version: str, new_version: str) -> None:
        abi_dir = ensure_directory(self._work_dir / "abi_check")
        original_ref = await self._vcs.current_ref()
        descriptors: Dict[str, Path] = {}

        try:
            for version in (old_version, new_version):
                await self._vcs.checkout(version)
                destdir = abi_dir / version
                await self._build_and_install(destdir, force_bootstrap=True)

                descriptor = abi_dir / f"{version}.xml"
                descriptor.write_text(self._descriptor(version, destdir), encoding="utf-8")
                descriptors[version] = descriptor
        finally:
            await self._vcs.checkout(original_ref)

        await self._step(
            BuildPhase.ANALYZE,
            "abi-compliance-checker",
            [
                "-l", self.library_name,
                "-old", str(descriptors[old_version]),
                "-new", str(descriptors[new_version]),
            ],
            cwd=abi_dir,
        )

        report = abi_dir / "compat_reports" / self.library_name / f"{old_version}_to_{new_version}" / "compat_report.html"
        await self._viewer.open(report)


class ApiSanityProcedure(_InstalledTreeMixin, ToolProcedure):
    name = "api_sanity"
    tools = ("api-sanity-checker",)
    prerequisite_policy = PrerequisitePolicy.WARN

    async def _execute(self) -> None:
        version = await self._vcs.describe()
        api_dir = ensure_directory(self._work_dir / "api_sanity")
        destdir = api_dir / version

        await self._build_and_install(destdir)

        descriptor = api_dir / f"{version}.xml"
        descriptor.write_text(self._descriptor(version, destdir), encoding="utf-8")

        await self._step(
            BuildPhase.ANALYZE,
            "api-sanity-checker",
            ["-l", self.library_name, "-d", str(descriptor), "-gen", "-build", "-run"],
            cwd=api_dir,
        )

        report = api_dir / "test_results" / self.library_name / version / "test_results.html"
        await self._viewer.open(report)


PROCEDURES: Dict[str, Type[ToolProcedure]] = {
    procedure.name: procedure
    for procedure in (MockProcedure, CoverityProcedure, ClangProcedure, AbiProcedure, ApiSanityProcedure)
}
