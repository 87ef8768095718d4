"""LogProgressAdapter: reports progress changes via logging."""

import logging

from pensieve_pipeline.models import ProgressSnapshot
from pensieve_pipeline.ports.progress import ProgressPort

logger = logging.getLogger(__name__)


class LogProgressAdapter(ProgressPort):
    def notify(self, snapshot: ProgressSnapshot) -> None:
        job = snapshot.active_job.recording_id if snapshot.active_job else "-"
        msg = f"[{job}] {snapshot.current_step}"
        value = snapshot.progress.get(snapshot.current_step)
        if value:
            msg += f" {value:.0%}"
            if snapshot.current_step in snapshot.estimated_steps:
                msg += " (estimated)"
        if not snapshot.is_running:
            msg += ": idle"
        logger.info(msg)
