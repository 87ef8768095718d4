"""ShellHookRunner: runs user-configured commands after post-processing.

Each command runs through the shared ProcessRunner with the recording id
and folder in its environment, in the recording folder.
"""

import os
import shlex
import logging

from pensieve_pipeline.domain.models import Job, RecordingPaths
from pensieve_pipeline.ports.hooks import HookRunnerPort
from pensieve_pipeline.runner import ProcessRunner

logger = logging.getLogger(__name__)


class ShellHookRunner(HookRunnerPort):
    def __init__(self, commands: list[str], runner: ProcessRunner):
        self._commands = commands
        self._runner = runner

    def run(self, job: Job, paths: RecordingPaths) -> None:
        env = {
            **os.environ,
            "PENSIEVE_RECORDING_ID": job.recording_id,
            "PENSIEVE_RECORDING_DIR": str(paths.folder),
            "PENSIEVE_TRANSCRIPT": str(paths.transcript),
            "PENSIEVE_MP3": str(paths.mp3),
        }
        for command in self._commands:
            logger.info(f"Running hook for {job.recording_id}: {command}")
            self._runner.run(
                shlex.split(command),
                on_line=lambda line: logger.info(f"hook: {line}"),
                env=env,
                cwd=str(paths.folder),
            )
