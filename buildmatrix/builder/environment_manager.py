from typing import Optional, Dict, Any, List, Mapping, Sequence
import os
import platform
import shutil

from buildmatrix.common.dto.environment import EnvironmentSnapshot
from buildmatrix.common.config.logging_config import get_logger


logger = get_logger(__name__)


class EnvironmentManager:
    def __init__(self, source: Optional[Mapping[str, str]] = None):
        self._source = source

    def capture_snapshot(self) -> EnvironmentSnapshot:
        snapshot = EnvironmentSnapshot.capture(self._source)
        logger.debug(
            f"Captured environment snapshot with {len(snapshot.variables)} variables "
            f"(CFLAGS={snapshot.get('CFLAGS', '')!r})"
        )
        return snapshot

    def find_missing_tools(
        self,
        tools: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
    ) -> List[str]:
        path = env.get("PATH") if env is not None else None
        return [tool for tool in tools if shutil.which(tool, path=path) is None]

    def get_system_info(self) -> Dict[str, Any]:
        return {
            "os_name": platform.system(),
            "os_version": platform.release(),
            "machine": platform.machine(),
            "cpu_count": os.cpu_count() or 0,
            "hostname": platform.node(),
        }
