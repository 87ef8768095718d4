"""Exception hierarchy for pipeline failures."""

from typing import Any


class PipelineError(Exception):
    """Base exception for errors raised by pipeline steps.

    Attributes:
        error_code: Machine-readable identifier shown next to the message.
        context: Arbitrary key-value pairs describing the failure.
    """

    def __init__(self, message: str, error_code: str = "PIPELINE_ERROR", **context: Any) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.context = context


class MissingAudioError(PipelineError):
    """No usable audio input exists for a step that needs one."""

    def __init__(self, recording_id: str, **context: Any) -> None:
        super().__init__(
            f"No audio file found for processing recording: {recording_id}",
            error_code="MISSING_AUDIO",
            recording_id=recording_id,
            **context,
        )


class CommandFailedError(PipelineError):
    """An external command exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, stderr: str = "", **context: Any) -> None:
        tail = stderr.strip()[-2000:]
        message = f"{command} exited with status {returncode}"
        if tail:
            message += f": {tail}"
        super().__init__(message, error_code="COMMAND_FAILED", returncode=returncode, **context)
        self.returncode = returncode
        self.stderr = tail


class ModelDownloadError(PipelineError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, error_code="MODEL_DOWNLOAD_FAILED", **context)


class SummarizationError(PipelineError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, error_code="SUMMARIZATION_FAILED", **context)
