"""
Background runner for batch jobs.

Jobs run on a small thread pool. Every submission gets a ``BatchJob``
handle that can be looked up by id until it ages out of the history.
Submissions are not deduplicated or serialized against each other.
"""
import logging
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Optional
from uuid import uuid4

from metamorfose.exceptions import MetamorfoseError
from metamorfose.schemas import BatchJob, JobStatus

logger = logging.getLogger(__name__)


class BatchJobRunner:
    def __init__(self, max_workers: int = 2, history: int = 200):
        self.history = history
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="batch-job")
        self._jobs: "OrderedDict[str, BatchJob]" = OrderedDict()
        self.lock = threading.Lock()

    def submit(self, job_type: str, fn: Callable[[], str]) -> BatchJob:
        job = BatchJob(job_id=uuid4().hex, job_type=job_type)
        with self.lock:
            self._jobs[job.job_id] = job
            self._prune()

        self.executor.submit(self._run, job.job_id, fn)
        logger.info("Queued batch job %s (%s)", job.job_id, job_type)
        return job.model_copy()

    def get(self, job_id: str) -> Optional[BatchJob]:
        with self.lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def shutdown(self, wait: bool = False) -> None:
        self.executor.shutdown(wait=wait)

    def _update(self, job_id: str, **changes) -> None:
        with self.lock:
            job = self._jobs.get(job_id)
            if job is not None:
                self._jobs[job_id] = job.model_copy(update=changes)

    def _run(self, job_id: str, fn: Callable[[], str]) -> None:
        self._update(job_id, status=JobStatus.RUNNING, started_at=datetime.now())
        try:
            result = fn()
        except MetamorfoseError as e:
            logger.error("Batch job %s failed: %s", job_id, e, exc_info=True)
            self._update(job_id, status=JobStatus.FAILED, error=str(e), finished_at=datetime.now())
        except Exception:
            logger.exception("Batch job %s failed", job_id)
            self._update(job_id, status=JobStatus.FAILED, error="Internal server error", finished_at=datetime.now())
        else:
            logger.info("Batch job %s finished", job_id)
            self._update(job_id, status=JobStatus.SUCCEEDED, result=result, finished_at=datetime.now())

    def _prune(self) -> None:
        """Drop the oldest finished handles once the history is full. Caller holds the lock."""
        if len(self._jobs) <= self.history:
            return
        for job_id in [j.job_id for j in self._jobs.values() if j.done]:
            if len(self._jobs) <= self.history:
                break
            del self._jobs[job_id]
