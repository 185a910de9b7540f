from buildmatrix.builder.process_runner import ExternalProcessRunner, ProcessResult
from buildmatrix.builder.variant_executor import BuildVariantExecutor, VariantExecutionContext
from buildmatrix.builder.log_parser import LogParser, LogParseResult
from buildmatrix.builder.environment_manager import EnvironmentManager

__all__ = [
    "ExternalProcessRunner",
    "ProcessResult",
    "BuildVariantExecutor",
    "VariantExecutionContext",
    "LogParser",
    "LogParseResult",
    "EnvironmentManager",
]
