"""ProcessRunner: runs external commands and can terminate all of them.

ffmpeg, whisper.cpp and shell hooks go through one runner so the queue's
stop() can kill whatever is in flight. Output is streamed line by line so
callers can parse progress while the command runs.
"""

import logging
import subprocess
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from pensieve_pipeline.domain.errors import CommandFailedError

logger = logging.getLogger(__name__)

# Lines of combined output kept for error messages.
OUTPUT_TAIL_LINES = 50

TERMINATE_GRACE_SECONDS = 5


@dataclass
class CommandResult:
    returncode: int
    output: str


class ProcessRunner:
    def __init__(self):
        self._lock = threading.Lock()
        self._processes: set[subprocess.Popen] = set()

    def run(
        self,
        cmd: list[str],
        on_line: Optional[Callable[[str], None]] = None,
        env: Optional[dict] = None,
        cwd: Optional[str] = None,
        check: bool = True,
    ) -> CommandResult:
        """Run cmd to completion, feeding each output line to on_line.

        stderr is merged into stdout. Raises CommandFailedError on a
        non-zero exit when check is set.
        """
        logger.debug(f"Running: {' '.join(cmd)}")
        tail: deque[str] = deque(maxlen=OUTPUT_TAIL_LINES)
        with subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            env=env,
            cwd=cwd,
        ) as proc:
            with self._lock:
                self._processes.add(proc)
            try:
                for line in proc.stdout:
                    line = line.rstrip("\n")
                    tail.append(line)
                    if on_line:
                        on_line(line)
                returncode = proc.wait()
            except BaseException:
                logger.warning(f"Killing {cmd[0]} (pid {proc.pid}) after an error while reading its output")
                proc.kill()
                raise
            finally:
                with self._lock:
                    self._processes.discard(proc)

        output = "\n".join(tail)
        if check and returncode != 0:
            logger.error(f"Command failed ({returncode}): {cmd[0]}\n{output}")
            raise CommandFailedError(cmd[0], returncode, output)
        return CommandResult(returncode=returncode, output=output)

    def abort_all(self) -> int:
        """Terminate every running command. Returns how many were signalled."""
        with self._lock:
            processes = list(self._processes)

        for proc in processes:
            if proc.poll() is not None:
                continue
            logger.info(f"Terminating process {proc.pid}")
            proc.terminate()
            try:
                proc.wait(timeout=TERMINATE_GRACE_SECONDS)
            except subprocess.TimeoutExpired:
                logger.warning(f"Process {proc.pid} did not exit, killing")
                proc.kill()
        return len(processes)

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._processes)
