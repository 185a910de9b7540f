from typing import Optional, Dict, List, Union
from dataclasses import dataclass, field
from pathlib import Path
import re

from buildmatrix.common.config.constants import LOG_EXCERPT_MAX_CHARS
from buildmatrix.common.config.logging_config import get_logger
from buildmatrix.common.utils.file_utils import safe_read_file, tail_text


logger = get_logger(__name__)


@dataclass
class LogParseResult:
    content: str = ""
    totals: Dict[str, int] = field(default_factory=dict)
    failed_tests: List[str] = field(default_factory=list)

    @property
    def total_tests(self) -> int:
        return self.totals.get("TOTAL", 0)


class LogParser:
    """Reads the automake test-suite log left behind by ``make check``."""

    FAILURE_PATTERN = re.compile(r"^(FAIL|ERROR|XPASS): (\S+)")
    TOTALS_PATTERN = re.compile(r"^# (TOTAL|PASS|SKIP|XFAIL|FAIL|XPASS|ERROR):\s+(\d+)")

    def __init__(self, max_excerpt_chars: int = LOG_EXCERPT_MAX_CHARS):
        self._max_excerpt_chars = max_excerpt_chars

    def parse_file(self, log_path: Union[str, Path]) -> Optional[LogParseResult]:
        content = safe_read_file(log_path)
        if content is None:
            logger.debug(f"No test-suite log at {log_path}")
            return None
        return self.parse_content(content)

    def parse_content(self, content: str) -> LogParseResult:
        result = LogParseResult(content=content)

        for line in content.splitlines():
            totals_match = self.TOTALS_PATTERN.match(line)
            if totals_match:
                result.totals[totals_match.group(1)] = int(totals_match.group(2))
                continue

            failure_match = self.FAILURE_PATTERN.match(line)
            if failure_match:
                test_name = failure_match.group(2)
                if test_name not in result.failed_tests:
                    result.failed_tests.append(test_name)

        return result

    def excerpt(self, result: LogParseResult) -> Optional[str]:
        if not result.content.strip():
            return None
        return tail_text(result.content, self._max_excerpt_chars)

    def get_summary(self, result: LogParseResult) -> str:
        if not result.totals:
            return f"{len(result.failed_tests)} failing test(s)"
        parts = [f"{key.lower()}={value}" for key, value in result.totals.items()]
        return ", ".join(parts)
