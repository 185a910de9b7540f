from typing import Optional, Dict, Any, List

from buildmatrix.common.exceptions.base_exceptions import BuildMatrixError, ErrorCode


class ConfigurationError(BuildMatrixError):
    def __init__(
        self,
        message: str,
        configuration: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.CONFIGURATION_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        details = details or {}
        if configuration:
            details["configuration"] = configuration
        super().__init__(message, error_code, details, cause)
        self.configuration = configuration


class DuplicateNameError(ConfigurationError):
    def __init__(self, configuration: str):
        super().__init__(
            message=f"Configuration '{configuration}' is already registered",
            configuration=configuration,
            error_code=ErrorCode.CONFIGURATION_DUPLICATE_NAME,
        )


class NotFoundError(ConfigurationError):
    def __init__(
        self,
        configuration: str,
        available: Optional[List[str]] = None,
    ):
        details = {}
        if available is not None:
            details["available"] = list(available)
        super().__init__(
            message=f"Unknown configuration '{configuration}'",
            configuration=configuration,
            error_code=ErrorCode.CONFIGURATION_NOT_FOUND,
            details=details,
        )
        self.available = list(available or [])


class PhaseFailure(BuildMatrixError):
    def __init__(
        self,
        message: str,
        configuration: str,
        phase: str,
        exit_code: int,
        error_code: ErrorCode = ErrorCode.BUILD_FAILED,
        log_excerpt: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["configuration"] = configuration
        details["phase"] = phase
        details["exit_code"] = exit_code
        if log_excerpt:
            details["log_excerpt"] = log_excerpt[:1000]
        super().__init__(message, error_code, details)
        self.configuration = configuration
        self.phase = phase
        self.exit_code = exit_code
        self.log_excerpt = log_excerpt


class BuildFailure(PhaseFailure):
    def __init__(
        self,
        configuration: str,
        phase: str,
        exit_code: int,
        log_excerpt: Optional[str] = None,
    ):
        super().__init__(
            message=f"{configuration}: {phase} exited with code {exit_code}",
            configuration=configuration,
            phase=phase,
            exit_code=exit_code,
            error_code=ErrorCode.BUILD_FAILED,
            log_excerpt=log_excerpt,
        )


class TestFailure(PhaseFailure):
    __test__ = False

    def __init__(
        self,
        configuration: str,
        phase: str,
        exit_code: int,
        log_excerpt: Optional[str] = None,
        failed_tests: Optional[List[str]] = None,
    ):
        details = {}
        if failed_tests:
            details["failed_tests"] = failed_tests[:50]
        super().__init__(
            message=f"{configuration}: build+test exited with code {exit_code}",
            configuration=configuration,
            phase=phase,
            exit_code=exit_code,
            error_code=ErrorCode.TEST_FAILED,
            log_excerpt=log_excerpt,
            details=details,
        )
        self.failed_tests = failed_tests or []


class PrerequisiteMissingError(BuildMatrixError):
    def __init__(
        self,
        tool: str,
        configuration: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        details: Dict[str, Any] = {"tool": tool}
        if configuration:
            details["configuration"] = configuration
        if hint:
            details["hint"] = hint
        message = f"Required tool '{tool}' is not installed"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message, ErrorCode.PREREQUISITE_MISSING, details)
        self.tool = tool
        self.configuration = configuration
        self.hint = hint


class OrchestratorStateError(BuildMatrixError):
    def __init__(self, message: str, state: Optional[str] = None):
        details = {"state": state} if state else {}
        super().__init__(message, ErrorCode.ORCHESTRATOR_STATE_ERROR, details)
        self.state = state


class ReportFinalizedError(BuildMatrixError):
    def __init__(self, message: str = "Report has already been finalized"):
        super().__init__(message, ErrorCode.REPORT_FINALIZED)
