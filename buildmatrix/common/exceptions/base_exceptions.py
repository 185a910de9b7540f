from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ErrorCode(str, Enum):
    UNKNOWN = "E0000"

    CONFIGURATION_ERROR = "E1000"
    CONFIGURATION_DUPLICATE_NAME = "E1001"
    CONFIGURATION_NOT_FOUND = "E1002"

    PROCESS_ERROR = "E2000"
    PROCESS_SPAWN_FAILED = "E2001"
    PROCESS_TIMEOUT = "E2002"

    BUILD_FAILED = "E3000"
    TEST_FAILED = "E3001"

    PREREQUISITE_MISSING = "E4000"

    VERSION_CONTROL_ERROR = "E5000"

    ORCHESTRATOR_STATE_ERROR = "E6000"
    REPORT_FINALIZED = "E6001"


class BuildMatrixError(Exception):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": self.__class__.__name__,
        }

    def with_context(self, **kwargs: Any) -> "BuildMatrixError":
        self.details.update(kwargs)
        return self
