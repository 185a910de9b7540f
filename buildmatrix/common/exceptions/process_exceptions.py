from typing import Optional, Dict, Any, List

from buildmatrix.common.exceptions.base_exceptions import BuildMatrixError, ErrorCode


class ProcessError(BuildMatrixError):
    def __init__(
        self,
        message: str,
        command: str,
        args: Optional[List[str]] = None,
        error_code: ErrorCode = ErrorCode.PROCESS_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        details = details or {}
        details["command"] = command
        if args:
            details["args"] = list(args)
        super().__init__(message, error_code, details, cause)
        self.command = command
        self.args_list = list(args or [])


class ProcessSpawnError(ProcessError):
    def __init__(
        self,
        command: str,
        args: Optional[List[str]] = None,
        cause: Optional[Exception] = None,
    ):
        reason = str(cause) if cause else "command not found"
        super().__init__(
            message=f"Failed to start '{command}': {reason}",
            command=command,
            args=args,
            error_code=ErrorCode.PROCESS_SPAWN_FAILED,
            cause=cause,
        )


class ProcessTimeoutError(ProcessError):
    def __init__(
        self,
        command: str,
        timeout_seconds: float,
        args: Optional[List[str]] = None,
        partial_output: Optional[str] = None,
    ):
        details: Dict[str, Any] = {"timeout_seconds": timeout_seconds}
        if partial_output:
            details["partial_output"] = partial_output[-1000:]
        super().__init__(
            message=f"'{command}' timed out after {timeout_seconds}s",
            command=command,
            args=args,
            error_code=ErrorCode.PROCESS_TIMEOUT,
            details=details,
        )
        self.timeout_seconds = timeout_seconds
        self.partial_output = partial_output


class VersionControlError(BuildMatrixError):
    def __init__(
        self,
        message: str,
        ref: Optional[str] = None,
        output: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if ref:
            details["ref"] = ref
        if output:
            details["output"] = output[:500]
        super().__init__(message, ErrorCode.VERSION_CONTROL_ERROR, details, cause)
        self.ref = ref
