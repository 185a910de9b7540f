from buildmatrix.common.dto.base import BaseDTO, FrozenDTO
from buildmatrix.common.dto.configuration import Configuration
from buildmatrix.common.dto.environment import EnvironmentSnapshot
from buildmatrix.common.dto.result import ExecutionResult, RunReport

__all__ = [
    "BaseDTO",
    "FrozenDTO",
    "Configuration",
    "EnvironmentSnapshot",
    "ExecutionResult",
    "RunReport",
]
