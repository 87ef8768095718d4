"""HTTP control surface for the post-processing queue."""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException

from pensieve_pipeline.domain.models import Job
from pensieve_pipeline.models import EnqueueRequest, JobView, ProgressSnapshot
from pensieve_pipeline.mappers import job_to_view
from pensieve_pipeline.use_cases.queue import PostProcessingQueue

logger = logging.getLogger(__name__)


def create_app(queue: Optional[PostProcessingQueue] = None) -> FastAPI:
    if queue is None:
        from pensieve_pipeline.config import create_queue
        queue = create_queue()

    app = FastAPI(title="Pensieve post-processing")
    app.state.queue = queue

    @app.get("/health")
    def health():
        return {"status": "ok", "is_running": queue.is_running}

    @app.get("/progress", response_model=ProgressSnapshot)
    def progress():
        return queue.progress_snapshot()

    @app.post("/jobs", response_model=JobView, status_code=201)
    def enqueue(req: EnqueueRequest):
        job = Job(recording_id=req.recording_id, steps=set(req.steps) if req.steps is not None else None)
        queue.enqueue(job)
        return job_to_view(job)

    @app.delete("/jobs", status_code=204)
    def clear_list():
        queue.clear_list()

    @app.post("/jobs/{recording_id}/reset", response_model=ProgressSnapshot)
    def reset_job(recording_id: str):
        if not queue.reset_job(recording_id):
            raise HTTPException(status_code=404, detail=f"No resettable job for {recording_id}")
        return queue.progress_snapshot()

    @app.post("/queue/start", response_model=ProgressSnapshot)
    def start():
        queue.start()
        return queue.progress_snapshot()

    @app.post("/queue/stop", response_model=ProgressSnapshot)
    def stop():
        logger.info("Stop requested")
        queue.stop()
        return queue.progress_snapshot()

    return app
