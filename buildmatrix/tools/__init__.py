from buildmatrix.tools.procedures import (
    ToolProcedure,
    MockProcedure,
    CoverityProcedure,
    ClangProcedure,
    AbiProcedure,
    ApiSanityProcedure,
    PROCEDURES,
)
from buildmatrix.tools.version_control import VersionControl, working_directory
from buildmatrix.tools.viewer import ReportViewer

__all__ = [
    "ToolProcedure",
    "MockProcedure",
    "CoverityProcedure",
    "ClangProcedure",
    "AbiProcedure",
    "ApiSanityProcedure",
    "PROCEDURES",
    "VersionControl",
    "working_directory",
    "ReportViewer",
]
