from pathlib import Path
from typing import Optional, Union

from buildmatrix.common.config.logging_config import get_logger


logger = get_logger(__name__)


def safe_read_file(
    file_path: Union[str, Path],
    encoding: str = "utf-8",
    default: Optional[str] = None,
) -> Optional[str]:
    file_path = Path(file_path)

    try:
        if not file_path.exists():
            logger.debug(f"File does not exist: {file_path}")
            return default

        if not file_path.is_file():
            logger.warning(f"Path is not a file: {file_path}")
            return default

        with open(file_path, "r", encoding=encoding, errors="replace") as f:
            return f.read()
    except PermissionError:
        logger.error(f"Permission denied reading file: {file_path}")
        return default
    except OSError as e:
        logger.error(f"Unexpected error reading file {file_path}: {e}")
        return default


def tail_text(content: str, max_chars: int) -> str:
    if len(content) <= max_chars:
        return content

    tail = content[-max_chars:]
    newline = tail.find("\n")
    if 0 <= newline < len(tail) - 1:
        tail = tail[newline + 1:]
    return f"[... truncated ...]\n{tail}"


def ensure_directory(path: Union[str, Path]) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
