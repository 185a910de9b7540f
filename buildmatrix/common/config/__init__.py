from buildmatrix.common.config.settings import Settings, get_settings
from buildmatrix.common.config.logging_config import (
    setup_logging,
    get_logger,
    get_variant_logger,
)
from buildmatrix.common.config.constants import (
    ExecutionOutcome,
    RunOutcome,
    RunState,
    FailurePolicy,
    BuildPhase,
    PrerequisitePolicy,
    ALL_SELECTOR,
    BASELINE_CONFIGURE_FLAGS,
)

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "get_logger",
    "get_variant_logger",
    "ExecutionOutcome",
    "RunOutcome",
    "RunState",
    "FailurePolicy",
    "BuildPhase",
    "PrerequisitePolicy",
    "ALL_SELECTOR",
    "BASELINE_CONFIGURE_FLAGS",
]
