from buildmatrix.common.utils.file_utils import (
    safe_read_file,
    tail_text,
    ensure_directory,
)
from buildmatrix.common.utils.time_utils import (
    utc_now,
    format_duration,
    format_millis,
    Timer,
)

__all__ = [
    "safe_read_file",
    "tail_text",
    "ensure_directory",
    "utc_now",
    "format_duration",
    "format_millis",
    "Timer",
]
