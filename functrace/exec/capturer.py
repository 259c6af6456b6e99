"""
Process output capturer.

Runs the configured trace command for a target path, drains standard output
and standard error on two reader threads, and returns both once the child has
exited and both readers have finished.
"""

import io
import logging
import os
import signal
import subprocess
import threading
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from ..config import CaptureConfig
from ..exceptions import CaptureTimeoutError
from .result import CaptureResult


logger = logging.getLogger(__name__)


PathArg = Union[str, os.PathLike]


def _launch_options() -> Dict[str, Any]:
    """Popen keyword arguments: own process group, and no console window on Windows."""
    if os.name != 'nt':
        return {"start_new_session": True}
    startupinfo = subprocess.STARTUPINFO()
    startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
    startupinfo.wShowWindow = subprocess.SW_HIDE
    return {
        "startupinfo": startupinfo,
        "creationflags": subprocess.CREATE_NO_WINDOW | subprocess.CREATE_NEW_PROCESS_GROUP,
    }


def _kill_process_group(process: subprocess.Popen) -> None:
    """Kill the child and everything it spawned into its process group."""
    if os.name == 'nt':
        process.kill()
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        # Group already gone; reap the child below as usual
        pass


class StreamDrain:
    """
    Copies one child pipe into an in-memory buffer on its own thread.

    The pipe is closed when EOF is reached. join() is the barrier: it waits
    for the thread and re-raises any read error on the caller's thread.
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(self, pipe: io.BufferedIOBase, name: str):
        self.pipe = pipe
        self.name = name
        self.buffer = io.BytesIO()
        self.error: Optional[BaseException] = None
        self._thread = threading.Thread(
            target=self._drain,
            name=f"functrace-{name}",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def _drain(self) -> None:
        try:
            with self.pipe:
                for chunk in iter(lambda: self.pipe.read1(self.CHUNK_SIZE), b''):
                    self.buffer.write(chunk)
        except (OSError, ValueError) as e:
            self.error = e

    def join(self, timeout: Optional[float] = None) -> io.BytesIO:
        """
        Wait for EOF and return the buffer rewound to the start.

        With a timeout, a reader still blocked when it expires is abandoned
        (its thread is a daemon) and a snapshot of what it has read so far
        is returned instead.
        """
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning(f"{self.name} still open after {timeout} seconds, returning partial output")
            return io.BytesIO(self.buffer.getvalue())
        if self.error is not None:
            raise self.error
        self.buffer.seek(0)
        return self.buffer


class ProcessOutputCapturer:
    """
    Runs one external command per call and captures both output streams.

    The command prefix, working directory, encoding and optional deadline come
    from CaptureConfig; the target path is appended as the last argument.
    """

    # How long the readers may keep draining after a timed-out child is killed
    DRAIN_GRACE_SEC = 2.0

    def __init__(self, config: Optional[CaptureConfig] = None):
        """
        Initialize the capturer.

        Args:
            config: Launch settings (default: CaptureConfig())
        """
        self.config = config or CaptureConfig()

    def build_command(self, path: PathArg) -> List[str]:
        """Return the argv launched for path."""
        return [*self.config.command, os.fspath(path)]

    def run(self, path: PathArg) -> Tuple[io.BytesIO, str]:
        """
        Run the command for path and return (stdout buffer, stderr text).

        Raises:
            OSError: If the command cannot be started
            CaptureTimeoutError: If the configured deadline passes
        """
        result = self.capture(path)
        return result.output, result.messages

    def capture(self, path: PathArg, timeout_sec: Optional[float] = None) -> CaptureResult:
        """
        Run the command for path and return the full capture record.

        Args:
            path: Target passed as the command's last argument
            timeout_sec: Deadline override (default: config.timeout_sec)

        Returns:
            CaptureResult with complete stdout and stderr

        Raises:
            OSError: If the command cannot be started
            CaptureTimeoutError: If the child is still running at the deadline
        """
        command = self.build_command(path)
        working_dir = self.config.resolve_working_dir()
        timeout = timeout_sec if timeout_sec is not None else self.config.timeout_sec

        process_env = os.environ.copy()
        if self.config.env:
            process_env.update(self.config.env)

        logger.debug(f"Executing command: {command} in {working_dir}")
        start_time = time.time()

        # Launch failures propagate unmodified
        process = subprocess.Popen(
            command,
            cwd=str(working_dir),
            env=process_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            **_launch_options(),
        )

        stdout_drain = StreamDrain(process.stdout, "stdout")
        stderr_drain = StreamDrain(process.stderr, "stderr")
        stderr_drain.start()
        stdout_drain.start()

        try:
            exit_code = process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Command timed out after {timeout} seconds, killing pid {process.pid}")
            _kill_process_group(process)
            process.wait()
            # A descendant outside the group may still hold the pipes open
            output = stdout_drain.join(self.DRAIN_GRACE_SEC)
            messages = self._decode(stderr_drain.join(self.DRAIN_GRACE_SEC))
            raise CaptureTimeoutError(timeout, output.getvalue(), messages, command)
        except KeyboardInterrupt:
            # The child is outside the terminal's foreground group and never saw the signal
            _kill_process_group(process)
            process.wait()
            raise

        output = stdout_drain.join()
        messages = self._decode(stderr_drain.join())
        duration_ms = int((time.time() - start_time) * 1000)

        logger.debug(
            f"Command exited with code {exit_code} after {duration_ms} ms "
            f"({len(output.getvalue())} stdout bytes, {len(messages)} stderr chars)"
        )

        return CaptureResult(
            command=command,
            working_dir=working_dir,
            exit_code=exit_code,
            output=output,
            messages=messages,
            duration_ms=duration_ms,
            encoding=self.config.encoding,
        )

    def _decode(self, buffer: io.BytesIO) -> str:
        return buffer.getvalue().decode(self.config.encoding, errors='replace')


def run(path: PathArg, config: Optional[CaptureConfig] = None) -> Tuple[io.BytesIO, str]:
    """Run the trace command for path with a one-off capturer."""
    return ProcessOutputCapturer(config).run(path)
