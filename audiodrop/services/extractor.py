"""External audio extractor wrapper.

Runs the extraction executable (yt-dlp by default) as a subprocess with a
hard timeout. Only the exit code and the captured output are consumed; the
tool itself is an opaque collaborator.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from audiodrop.config import AppConfig

logger = logging.getLogger(__name__)

# Exit code reported for a run that hit the timeout
TIMEOUT_RETURNCODE = 124
# Exit code reported when the executable could not be started
NOT_STARTED_RETURNCODE = 127
# Seconds to wait for pipe readers once the process has exited
READER_GRACE_SECONDS = 5.0


async def _drain(stream: asyncio.StreamReader | None, buf: bytearray) -> None:
    if stream is None:
        return
    while chunk := await stream.read(65536):
        buf.extend(chunk)


async def _finish_readers(readers: list[asyncio.Task]) -> None:
    """Wait for the pipe readers to hit EOF.

    A helper process that inherited the pipes can keep them open after the
    tool exits; readers still running after the grace period are cancelled.
    """
    _done, pending = await asyncio.wait(readers, timeout=READER_GRACE_SECONDS)
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)


def _decode(buf: bytearray) -> str:
    return buf.decode("utf-8", errors="replace")


@dataclass
class ExtractionResult:
    """Outcome of one extractor invocation."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class ExternalExtractor:
    """Invokes the extraction tool for a source URL.

    The command line is:
        <executable> -x --audio-format <fmt> -o <dir>/<template> <url>
    """

    def __init__(
        self,
        executable: str = "yt-dlp",
        timeout_seconds: float = 600,
        audio_format: str = "mp3",
        output_template: str = "%(title).100B.%(ext)s",
    ) -> None:
        self.executable = executable
        self.timeout_seconds = timeout_seconds
        self.audio_format = audio_format
        self.output_template = output_template

    @classmethod
    def from_config(cls, config: "AppConfig") -> "ExternalExtractor":
        return cls(
            executable=config.extractor_executable,
            timeout_seconds=config.extractor_timeout_seconds,
            audio_format=config.audio_format,
            output_template=config.output_template,
        )

    def build_command(self, source_url: str, output_dir: Path) -> list[str]:
        """Build the argv for one extraction run."""
        return [
            self.executable,
            "-x",
            "--audio-format",
            self.audio_format,
            "-o",
            str(Path(output_dir) / self.output_template),
            source_url,
        ]

    def collect_outputs(self, output_dir: Path) -> list[Path]:
        """List produced audio files in a workspace, sorted by name."""
        return sorted(
            p for p in Path(output_dir).glob(f"*.{self.audio_format}") if p.is_file()
        )

    async def run(self, source_url: str, output_dir: Path) -> ExtractionResult:
        """Run the extractor and wait for it, bounded by the timeout.

        On timeout the whole process group is killed so helper processes
        (ffmpeg) do not outlive the run, and the stderr written so far is
        returned with a timeout note appended.

        Args:
            source_url: Media URL handed to the tool verbatim.
            output_dir: Job workspace the tool writes into.

        Returns:
            ExtractionResult; never raises for tool failures.
        """
        cmd = self.build_command(source_url, output_dir)
        t0 = time.perf_counter()

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            logger.error("Could not start extractor %s: %s", self.executable, e)
            return ExtractionResult(
                returncode=NOT_STARTED_RETURNCODE,
                stderr=f"Could not start {self.executable}: {e}",
            )

        # Output is buffered as it arrives so a killed run keeps what it wrote
        stdout_buf = bytearray()
        stderr_buf = bytearray()
        readers = [
            asyncio.create_task(_drain(proc.stdout, stdout_buf)),
            asyncio.create_task(_drain(proc.stderr, stderr_buf)),
        ]

        try:
            await asyncio.wait_for(proc.wait(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            self._kill(proc)
            await proc.wait()
            await _finish_readers(readers)
            dt_ms = int((time.perf_counter() - t0) * 1000)
            logger.warning(
                "Extractor timed out after %ss for %s", self.timeout_seconds, source_url
            )
            note = f"Extraction timed out after {self.timeout_seconds} seconds"
            captured = _decode(stderr_buf)
            return ExtractionResult(
                returncode=TIMEOUT_RETURNCODE,
                stdout=_decode(stdout_buf),
                stderr=f"{captured.rstrip()}\n{note}" if captured.strip() else note,
                timed_out=True,
                duration_ms=dt_ms,
            )
        except asyncio.CancelledError:
            self._kill(proc)
            for task in readers:
                task.cancel()
            raise

        await _finish_readers(readers)
        dt_ms = int((time.perf_counter() - t0) * 1000)
        result = ExtractionResult(
            returncode=proc.returncode if proc.returncode is not None else 0,
            stdout=_decode(stdout_buf),
            stderr=_decode(stderr_buf),
            duration_ms=dt_ms,
        )
        logger.info(
            "Extractor exited with %d in %d ms (stdout=%d bytes, stderr=%d bytes)",
            result.returncode,
            dt_ms,
            len(result.stdout),
            len(result.stderr),
        )
        return result

    @staticmethod
    def _kill(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            try:
                proc.kill()
            except ProcessLookupError:
                pass
