"""
BuildVariantExecutor tests, mostly with a scripted process runner.
"""

import asyncio
import sys

import pytest

from buildmatrix.builder.process_runner import ExternalProcessRunner
from buildmatrix.builder.variant_executor import BuildVariantExecutor
from buildmatrix.common.config.constants import (
    BASELINE_CONFIGURE_FLAGS,
    BuildPhase,
    ExecutionOutcome,
)
from buildmatrix.common.dto.configuration import Configuration
from buildmatrix.common.exceptions import (
    PrerequisiteMissingError,
    ProcessSpawnError,
    ProcessTimeoutError,
)


FAILING_LOG = "# TOTAL: 3\n# FAIL:  1\nFAIL: check_ipc\ncheck_ipc.c:42: boom\n"


class TestSuccessfulExecution:
    """Test the configure then build+test sequence."""

    def test_configure_then_check(self, make_executor, fake_runner, snapshot, project_dir):
        config = Configuration(name="ansi", configure_flags=("--enable-ansi",))

        result = asyncio.run(make_executor().execute(config, snapshot))

        assert result.outcome == ExecutionOutcome.PASSED
        assert result.exit_code == 0
        assert result.configuration_name == "ansi"
        assert fake_runner.commands() == [
            " ".join(["./configure", "--enable-ansi", *BASELINE_CONFIGURE_FLAGS]),
            "make check",
        ]
        assert all(call.cwd == project_dir for call in fake_runner.calls)

    def test_build_targets_replace_check(self, make_executor, fake_runner, snapshot):
        config = Configuration(name="dist", build_targets=("distcheck",))

        asyncio.run(make_executor().execute(config, snapshot))

        assert fake_runner.commands()[-1] == "make distcheck"

    def test_overrides_reach_both_steps(self, make_executor, fake_runner, snapshot):
        config = Configuration(
            name="sysv",
            environment_overrides={"CFLAGS": "${CFLAGS} -DDISABLE_POSIX_THREAD_PROCESS_SHARED"},
        )

        asyncio.run(make_executor().execute(config, snapshot))

        for call in fake_runner.calls:
            assert call.env["CFLAGS"] == "-O2 -g -DDISABLE_POSIX_THREAD_PROCESS_SHARED"
            assert call.env["HOME"] == "/home/dev"

    def test_bootstrap_runs_when_configure_is_missing(self, make_executor, fake_runner, snapshot, project_dir):
        executor = make_executor(bootstrap_command="./autogen.sh")

        asyncio.run(executor.execute(Configuration(name="ansi"), snapshot))
        assert fake_runner.commands()[0] == "./autogen.sh"

        fake_runner.calls.clear()
        (project_dir / "configure").write_text("#!/bin/sh\n")
        asyncio.run(executor.execute(Configuration(name="ansi"), snapshot))
        assert fake_runner.commands()[0].startswith("./configure")

    def test_phase_logs_go_under_logs_dir(self, make_executor, fake_runner, snapshot, tmp_path):
        logs_dir = tmp_path / "logs"

        asyncio.run(make_executor(logs_dir=logs_dir).execute(Configuration(name="ansi"), snapshot))

        assert [call.log_path for call in fake_runner.calls] == [
            logs_dir / "ansi" / "configure.log",
            logs_dir / "ansi" / "check.log",
        ]


class TestFailedExecution:
    """Test how failures become results."""

    def test_configure_failure_skips_build(self, make_executor, fake_runner, snapshot):
        fake_runner.on("./configure", exit_code=1, output="checking for gcc... no\nconfigure: error: no C compiler\n")

        result = asyncio.run(make_executor().execute(Configuration(name="ansi"), snapshot))

        assert result.outcome == ExecutionOutcome.FAILED
        assert result.exit_code == 1
        assert result.failed_phase == BuildPhase.CONFIGURE
        assert "no C compiler" in result.log_excerpt
        assert len(fake_runner.calls) == 1

    def test_check_failure_reports_test_log(self, make_executor, fake_runner, snapshot, write_test_log):
        fake_runner.on("make", "check", exit_code=2, side_effect=write_test_log(FAILING_LOG))

        result = asyncio.run(make_executor().execute(Configuration(name="ansi"), snapshot))

        assert result.outcome == ExecutionOutcome.FAILED
        assert result.exit_code == 2
        assert result.failed_phase == BuildPhase.CHECK
        assert result.failed_tests == ("check_ipc",)
        assert "check_ipc.c:42: boom" in result.log_excerpt

    def test_check_failure_without_log_has_no_excerpt(self, make_executor, fake_runner, snapshot):
        fake_runner.on("make", "check", exit_code=2, output="make: *** [check] Error 2\n")

        result = asyncio.run(make_executor().execute(Configuration(name="ansi"), snapshot))

        assert result.outcome == ExecutionOutcome.FAILED
        assert result.exit_code == 2
        assert result.log_excerpt is None

    def test_stale_log_is_not_reported(self, make_executor, fake_runner, snapshot, project_dir):
        stale = project_dir / "tests" / "test-suite.log"
        stale.parent.mkdir()
        stale.write_text("FAIL: from_a_previous_variant\n")
        fake_runner.on("make", "check", exit_code=2)

        result = asyncio.run(make_executor().execute(Configuration(name="ansi"), snapshot))

        assert result.log_excerpt is None
        assert not stale.exists()

    def test_spawn_failure(self, make_executor, fake_runner, snapshot):
        fake_runner.on("./configure", raises=ProcessSpawnError("./configure"))

        result = asyncio.run(make_executor().execute(Configuration(name="ansi"), snapshot))

        assert result.outcome == ExecutionOutcome.FAILED
        assert result.exit_code == 127
        assert result.failed_phase == BuildPhase.CONFIGURE
        assert "./configure" in result.log_excerpt

    def test_timeout(self, make_executor, fake_runner, snapshot):
        fake_runner.on("make", raises=ProcessTimeoutError("make", timeout_seconds=60))

        result = asyncio.run(make_executor().execute(Configuration(name="ansi"), snapshot))

        assert result.outcome == ExecutionOutcome.FAILED
        assert result.exit_code == 124
        assert result.failed_phase == BuildPhase.CHECK
        assert "timed out" in result.log_excerpt


class TestPrerequisites:
    """Test required tool handling."""

    def test_missing_tool_skips_when_allowed(self, make_executor, fake_runner, snapshot):
        config = Configuration(name="rpm", required_tools=("rpmbuild",), skip_on_missing_tool=True)

        result = asyncio.run(make_executor(missing=["rpmbuild"]).execute(config, snapshot))

        assert result.outcome == ExecutionOutcome.SKIPPED
        assert result.exit_code == 0
        assert "rpmbuild" in result.log_excerpt
        assert fake_runner.calls == []

    def test_missing_tool_raises_otherwise(self, make_executor, fake_runner, snapshot):
        config = Configuration(name="rpm", required_tools=("rpmbuild",))

        with pytest.raises(PrerequisiteMissingError) as exc_info:
            asyncio.run(make_executor(missing=["rpmbuild"]).execute(config, snapshot))

        assert exc_info.value.tool == "rpmbuild"
        assert fake_runner.calls == []

    def test_present_tool_runs(self, make_executor, fake_runner, snapshot):
        config = Configuration(name="rpm", build_targets=("rpm",), required_tools=("rpmbuild",), skip_on_missing_tool=True)

        result = asyncio.run(make_executor().execute(config, snapshot))

        assert result.outcome == ExecutionOutcome.PASSED
        assert fake_runner.commands()[-1] == "make rpm"


@pytest.mark.skipif(sys.platform == "win32", reason="uses /bin/sh")
class TestWithRealProcesses:
    """Test the executor against the real process runner."""

    @pytest.fixture
    def make_real_executor(self, project_dir, settings, make_environment_manager):
        def factory(**kwargs) -> BuildVariantExecutor:
            effective = settings.model_copy(update={"configure_command": "true", "make_command": "sh"})
            return BuildVariantExecutor(
                ExternalProcessRunner(),
                project_dir,
                settings=effective,
                environment_manager=make_environment_manager(),
                **kwargs,
            )
        return factory

    def test_long_output_line_becomes_failed_result(self, make_real_executor, snapshot):
        config = Configuration(
            name="ansi",
            build_targets=("-c", "head -c 200000 /dev/zero | tr '\\000' x; exit 2"),
        )

        result = asyncio.run(make_real_executor().execute(config, snapshot))

        assert result.outcome == ExecutionOutcome.FAILED
        assert result.exit_code == 2
        assert result.failed_phase == BuildPhase.CHECK

    def test_unusable_logs_dir_becomes_failed_result(self, make_real_executor, snapshot, tmp_path):
        logs_dir = tmp_path / "logs"
        logs_dir.mkdir()
        (logs_dir / "ansi").write_text("not a directory")

        result = asyncio.run(make_real_executor(logs_dir=logs_dir).execute(Configuration(name="ansi"), snapshot))

        assert result.outcome == ExecutionOutcome.FAILED
        assert result.exit_code == 127
        assert result.failed_phase == BuildPhase.CONFIGURE
