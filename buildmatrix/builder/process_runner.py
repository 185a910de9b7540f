from typing import Optional, Dict, List, Sequence, Mapping, Union, IO
from dataclasses import dataclass
from pathlib import Path
import asyncio

from buildmatrix.common.config.logging_config import get_logger
from buildmatrix.common.exceptions.process_exceptions import (
    ProcessSpawnError,
    ProcessTimeoutError,
)
from buildmatrix.common.utils.time_utils import Timer


logger = get_logger(__name__)

READ_CHUNK_SIZE = 65536


@dataclass
class ProcessResult:
    exit_code: int
    combined_output: str = ""
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class ExternalProcessRunner:
    """Runs one external command and reports its exit status.

    A non-zero exit is returned, never raised. Only a command that cannot be
    started or whose log cannot be opened (``ProcessSpawnError``) or one that
    overruns its timeout (``ProcessTimeoutError``, after the process has been
    killed) raise.
    """

    def __init__(self, default_timeout: Optional[float] = None):
        self._default_timeout = default_timeout

    async def run(
        self,
        command: str,
        args: Sequence[str],
        env: Mapping[str, str],
        cwd: Union[str, Path],
        timeout: Optional[float] = None,
        log_path: Optional[Path] = None,
        append_log: bool = False,
    ) -> ProcessResult:
        timeout = timeout if timeout is not None else self._default_timeout
        args = list(args)
        logger.debug(f"Running command: {command} {' '.join(args)} (cwd={cwd})")

        log_file = self._open_log(command, args, log_path, append_log)
        output_chunks: List[bytes] = []
        timer = Timer().start()
        try:
            try:
                process = await asyncio.create_subprocess_exec(
                    command,
                    *args,
                    cwd=str(cwd),
                    env=dict(env),
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.STDOUT,
                )
            except OSError as e:
                raise ProcessSpawnError(command, args=args, cause=e) from e

            try:
                await asyncio.wait_for(
                    self._stream_output(process, output_chunks, log_file),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                raise ProcessTimeoutError(
                    command,
                    timeout_seconds=timeout,
                    args=args,
                    partial_output=self._decode(output_chunks),
                )
            finally:
                # no child outlives run(), whatever interrupted the read
                await self._kill(process)
        finally:
            if log_file is not None:
                log_file.close()

        timer.stop()
        result = ProcessResult(
            exit_code=process.returncode,
            combined_output=self._decode(output_chunks),
            duration_seconds=timer.elapsed,
        )
        logger.debug(f"Command {command} exited with {result.exit_code} after {timer.elapsed_formatted}")
        return result

    @staticmethod
    def _open_log(
        command: str,
        args: List[str],
        log_path: Optional[Path],
        append_log: bool,
    ) -> Optional[IO[bytes]]:
        if log_path is None:
            return None
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            return open(log_path, "ab" if append_log else "wb")
        except OSError as e:
            raise ProcessSpawnError(command, args=args, cause=e) from e

    async def _stream_output(
        self,
        process: asyncio.subprocess.Process,
        output_chunks: List[bytes],
        log_file: Optional[IO[bytes]],
    ) -> None:
        # Fixed-size reads: a single line may be arbitrarily long.
        while True:
            chunk = await process.stdout.read(READ_CHUNK_SIZE)
            if not chunk:
                break

            output_chunks.append(chunk)
            if log_file is not None:
                log_file.write(chunk)
                log_file.flush()

        await process.wait()

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()

    @staticmethod
    def _decode(output_chunks: List[bytes]) -> str:
        return b"".join(output_chunks).decode("utf-8", errors="replace")


def describe_command(
    command: str,
    args: Sequence[str],
    env_overrides: Optional[Dict[str, str]] = None,
) -> str:
    prefix = " ".join(f"{k}={v}" for k, v in (env_overrides or {}).items())
    text = " ".join([command, *args])
    return f"{prefix} {text}".strip()
