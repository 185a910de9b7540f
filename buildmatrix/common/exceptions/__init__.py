from buildmatrix.common.exceptions.base_exceptions import (
    BuildMatrixError,
    ErrorCode,
)
from buildmatrix.common.exceptions.build_exceptions import (
    ConfigurationError,
    DuplicateNameError,
    NotFoundError,
    PhaseFailure,
    BuildFailure,
    TestFailure,
    PrerequisiteMissingError,
    OrchestratorStateError,
    ReportFinalizedError,
)
from buildmatrix.common.exceptions.process_exceptions import (
    ProcessError,
    ProcessSpawnError,
    ProcessTimeoutError,
    VersionControlError,
)

__all__ = [
    "BuildMatrixError",
    "ErrorCode",
    "ConfigurationError",
    "DuplicateNameError",
    "NotFoundError",
    "PhaseFailure",
    "BuildFailure",
    "TestFailure",
    "PrerequisiteMissingError",
    "OrchestratorStateError",
    "ReportFinalizedError",
    "ProcessError",
    "ProcessSpawnError",
    "ProcessTimeoutError",
    "VersionControlError",
]
