from enum import Enum
from typing import Final


class ExecutionOutcome(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunOutcome(str, Enum):
    ALL_PASSED = "all_passed"
    SOME_FAILED = "some_failed"
    ABORTED = "aborted"


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class FailurePolicy(str, Enum):
    CONTINUE_ON_FAILURE = "continue_on_failure"
    STOP_ON_FIRST_FAILURE = "stop_on_first_failure"


class BuildPhase(str, Enum):
    BOOTSTRAP = "bootstrap"
    CONFIGURE = "configure"
    CHECK = "check"
    INSTALL = "install"
    ANALYZE = "analyze"
    PACKAGE = "package"


class PrerequisitePolicy(str, Enum):
    REQUIRE = "require"
    WARN = "warn"


ALL_SELECTOR: Final[str] = "all"

BASELINE_CONFIGURE_FLAGS: Final[tuple] = (
    "--enable-debug",
    "--enable-slow-tests",
    "--enable-fatal-warnings",
    "--quiet",
)

DEFAULT_CONFIGURE_COMMAND: Final[str] = "./configure"
DEFAULT_BOOTSTRAP_COMMAND: Final[str] = "./autogen.sh"
DEFAULT_MAKE_COMMAND: Final[str] = "make"
DEFAULT_BUILD_TARGETS: Final[tuple] = ("check",)
DEFAULT_TEST_LOG_PATH: Final[str] = "tests/test-suite.log"

LOG_EXCERPT_MAX_CHARS: Final[int] = 16000
PROCESS_SPAWN_EXIT_CODE: Final[int] = 127
PROCESS_TIMEOUT_EXIT_CODE: Final[int] = 124

DISABLE_PROCESS_SHARED_CFLAG: Final[str] = "-DDISABLE_POSIX_THREAD_PROCESS_SHARED"
