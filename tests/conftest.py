"""
Shared fixtures for the buildmatrix test suite.

External commands are never spawned here except by the process runner tests;
everything else goes through ``FakeProcessRunner``, which records each call
and answers it from a list of scripted rules.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import pytest

from buildmatrix.builder.environment_manager import EnvironmentManager
from buildmatrix.builder.process_runner import ExternalProcessRunner, ProcessResult
from buildmatrix.builder.variant_executor import BuildVariantExecutor
from buildmatrix.common.config.settings import Settings
from buildmatrix.common.dto.environment import EnvironmentSnapshot


@dataclass
class RecordedCall:
    command: str
    args: List[str]
    env: Dict[str, str]
    cwd: Path
    timeout: Optional[float] = None
    log_path: Optional[Path] = None

    @property
    def argv(self) -> List[str]:
        return [self.command, *self.args]


@dataclass
class Rule:
    command: str
    args_prefix: Sequence[str] = ()
    exit_code: int = 0
    output: str = ""
    raises: Optional[Exception] = None
    when: Optional[Callable[[RecordedCall], bool]] = None
    side_effect: Optional[Callable[[RecordedCall], None]] = None

    def matches(self, call: RecordedCall) -> bool:
        if call.command != self.command:
            return False
        if list(call.args[:len(self.args_prefix)]) != list(self.args_prefix):
            return False
        return self.when is None or self.when(call)


class FakeProcessRunner(ExternalProcessRunner):
    """Answers every command with exit 0 unless a rule says otherwise.

    Rules added later win over earlier ones.
    """

    def __init__(self):
        super().__init__()
        self.calls: List[RecordedCall] = []
        self._rules: List[Rule] = []

    def on(self, command: str, *args_prefix: str, **kwargs) -> "FakeProcessRunner":
        self._rules.append(Rule(command, args_prefix, **kwargs))
        return self

    def commands(self) -> List[str]:
        return [" ".join(call.argv) for call in self.calls]

    def calls_to(self, command: str) -> List[RecordedCall]:
        return [call for call in self.calls if call.command == command]

    async def run(
        self,
        command: str,
        args: Sequence[str],
        env: Mapping[str, str],
        cwd,
        timeout: Optional[float] = None,
        log_path: Optional[Path] = None,
        append_log: bool = False,
    ) -> ProcessResult:
        call = RecordedCall(command, list(args), dict(env), Path(cwd), timeout, log_path)
        self.calls.append(call)

        for rule in reversed(self._rules):
            if not rule.matches(call):
                continue
            if rule.side_effect is not None:
                rule.side_effect(call)
            if rule.raises is not None:
                raise rule.raises
            return ProcessResult(exit_code=rule.exit_code, combined_output=rule.output)

        return ProcessResult(exit_code=0)


class StaticEnvironmentManager(EnvironmentManager):
    """Reports a fixed set of tools as missing instead of searching PATH."""

    def __init__(self, missing: Iterable[str] = (), source: Optional[Mapping[str, str]] = None):
        super().__init__(source)
        self.missing = set(missing)

    def find_missing_tools(self, tools, env=None) -> List[str]:
        return [tool for tool in tools if tool in self.missing]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        log_level="WARNING",
        bootstrap_command=None,
        process_timeout_seconds=None,
        library_name="libdemo",
    )


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def fake_runner(project_dir: Path) -> FakeProcessRunner:
    runner = FakeProcessRunner()
    runner.on("git", "rev-parse", "--show-toplevel", output=f"{project_dir}\n")
    return runner


@pytest.fixture
def snapshot() -> EnvironmentSnapshot:
    return EnvironmentSnapshot.capture({"PATH": "/usr/bin:/bin", "CFLAGS": "-O2 -g", "HOME": "/home/dev"})


@pytest.fixture
def make_executor(fake_runner, project_dir, settings):
    def factory(missing: Iterable[str] = (), logs_dir: Optional[Path] = None, **overrides) -> BuildVariantExecutor:
        effective = settings.model_copy(update=overrides) if overrides else settings
        return BuildVariantExecutor(
            fake_runner,
            project_dir,
            settings=effective,
            environment_manager=StaticEnvironmentManager(missing),
            logs_dir=logs_dir,
        )
    return factory


@pytest.fixture
def write_test_log(project_dir: Path) -> Callable[[str], Callable[[RecordedCall], None]]:
    """Side effect that leaves a test-suite log behind, as a failing make check does."""
    def factory(content: str) -> Callable[[RecordedCall], None]:
        def side_effect(call: RecordedCall) -> None:
            log = project_dir / "tests" / "test-suite.log"
            log.parent.mkdir(parents=True, exist_ok=True)
            log.write_text(content)
        return side_effect
    return factory


@pytest.fixture
def make_environment_manager():
    def factory(*missing: str) -> EnvironmentManager:
        return StaticEnvironmentManager(missing)
    return factory
