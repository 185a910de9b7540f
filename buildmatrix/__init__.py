from buildmatrix.common import config
from buildmatrix.common import dto
from buildmatrix.common import exceptions
from buildmatrix.common import utils
from buildmatrix import builder
from buildmatrix import orchestrator
from buildmatrix import tools

__version__ = "1.0.0"
__all__ = [
    "config",
    "dto",
    "exceptions",
    "utils",
    "builder",
    "orchestrator",
    "tools",
]
