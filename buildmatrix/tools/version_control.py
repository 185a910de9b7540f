from typing import Optional, List, Mapping, Iterator, Union
from contextlib import contextmanager
from pathlib import Path
import os

from buildmatrix.builder.process_runner import ExternalProcessRunner, ProcessResult
from buildmatrix.common.config.logging_config import get_logger
from buildmatrix.common.exceptions.process_exceptions import ProcessError, VersionControlError


logger = get_logger(__name__)


class VersionControl:
    def __init__(
        self,
        runner: ExternalProcessRunner,
        env: Mapping[str, str],
        cwd: Union[str, Path],
        git_command: str = "git",
    ):
        self._runner = runner
        self._env = dict(env)
        self._cwd = Path(cwd)
        self._git = git_command

    async def locate_root(self) -> Path:
        result = await self._git_output(["rev-parse", "--show-toplevel"], "Not inside a git work tree")
        return Path(result.combined_output.strip())

    async def current_ref(self) -> str:
        result = await self._git_output(["rev-parse", "--abbrev-ref", "HEAD"], "Cannot determine current ref")
        ref = result.combined_output.strip()
        if ref == "HEAD":
            result = await self._git_output(["rev-parse", "HEAD"], "Cannot determine current commit")
            ref = result.combined_output.strip()
        return ref

    async def describe(self) -> str:
        result = await self._git_output(["describe", "--tags", "--always"], "Cannot describe current commit")
        return result.combined_output.strip()

    async def checkout(self, ref: str) -> None:
        logger.info(f"Checking out {ref}")
        await self._git_output(["checkout", "--quiet", ref], f"Failed to check out {ref}", ref=ref)

    async def _git_output(
        self,
        args: List[str],
        failure_message: str,
        ref: Optional[str] = None,
    ) -> ProcessResult:
        try:
            result = await self._runner.run(self._git, args, env=self._env, cwd=self._cwd)
        except ProcessError as e:
            raise VersionControlError(failure_message, ref=ref, cause=e).with_context(args=args) from e

        if not result.succeeded:
            raise VersionControlError(
                failure_message, ref=ref, output=result.combined_output
            ).with_context(args=args, exit_code=result.exit_code)
        return result


@contextmanager
def working_directory(path: Union[str, Path]) -> Iterator[Path]:
    previous = Path.cwd()
    os.chdir(path)
    logger.debug(f"Changed directory to {path}")
    try:
        yield Path(path)
    finally:
        os.chdir(previous)
        logger.debug(f"Restored directory {previous}")
