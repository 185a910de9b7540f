from typing import Optional, Mapping
from pathlib import Path

from buildmatrix.builder.process_runner import ExternalProcessRunner
from buildmatrix.common.config.logging_config import get_logger
from buildmatrix.common.exceptions.process_exceptions import ProcessError


logger = get_logger(__name__)


class ReportViewer:
    def __init__(
        self,
        runner: ExternalProcessRunner,
        browser: Optional[str],
        env: Mapping[str, str],
    ):
        self._runner = runner
        self._browser = browser
        self._env = dict(env)

    async def open(self, report_path: Path) -> bool:
        if not report_path.exists():
            logger.warning(f"Report not found: {report_path}")
            return False

        if not self._browser:
            logger.info(f"Report written to {report_path} (set BROWSER to open it)")
            return False

        try:
            result = await self._runner.run(
                self._browser,
                [str(report_path)],
                env=self._env,
                cwd=report_path.parent,
            )
        except ProcessError as e:
            logger.warning(f"Could not open report with {self._browser}: {e.message}")
            return False

        if not result.succeeded:
            logger.warning(f"{self._browser} exited with {result.exit_code} opening {report_path}")
            return False
        return True
