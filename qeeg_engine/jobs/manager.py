"""
Asynchronous analysis jobs

Uploads are registered as jobs and processed by background worker threads.
A job moves queued -> processing -> completed | failed and never leaves a
terminal state. Status queries are read-only apart from the optional
server-side time limit, which fails a job stuck in processing.
"""

import logging
import queue
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from ..core.data_types import FileRef, JobStatus, ProcessingJob, utc_now
from ..core.exceptions import InvalidJobTransition, JobNotFoundError
from ..core.config import ESTIMATED_DURATION_SEC, JOB_TTL_SEC, JOB_WORKERS
from ..pipeline.orchestrator import AnalysisOrchestrator

_STOP = object()


class JobLifecycleManager:
    """
    Registry of analysis jobs plus the workers that run them

    Jobs submitted before start() stay queued until workers are running.
    Use as a context manager to start and shut down the worker pool.
    """

    def __init__(self, orchestrator: AnalysisOrchestrator, workers: int = JOB_WORKERS,
                 job_ttl: Optional[float] = JOB_TTL_SEC):
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        if job_ttl is not None and job_ttl <= 0:
            raise ValueError(f"job_ttl must be positive, got {job_ttl}")

        self.orchestrator = orchestrator
        self.workers = workers
        self.job_ttl = job_ttl

        self._jobs: Dict[str, ProcessingJob] = {}
        self._lock = threading.Lock()
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._threads: List[threading.Thread] = []

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(wait=True)

    @property
    def is_running(self) -> bool:
        return bool(self._threads)

    def start(self):
        """Start the worker threads"""
        if self._threads:
            return
        for i in range(self.workers):
            thread = threading.Thread(target=self._worker_loop, name=f"qeeg-worker-{i}",
                                      daemon=True)
            thread.start()
            self._threads.append(thread)
        logging.info(f"Job manager started with {self.workers} workers")

    def shutdown(self, wait: bool = True):
        """Stop the workers once the queue drains"""
        if not self._threads:
            return
        for _ in self._threads:
            self._queue.put(_STOP)
        if wait:
            for thread in self._threads:
                thread.join()
        self._threads = []
        logging.info("Job manager stopped")

    def submit_job(self, file_ref: FileRef, patient_id: Optional[str] = None,
                   session_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Register an uploaded recording for analysis

        Args:
            file_ref: Location of the uploaded recording
            patient_id: Overrides file_ref.patient_id when given
            session_id: Overrides file_ref.session_id when given

        Returns:
            dict: job_id, status ("queued") and estimated_completion
        """
        if patient_id is not None or session_id is not None:
            file_ref = FileRef(
                patient_id=patient_id if patient_id is not None else file_ref.patient_id,
                session_id=session_id if session_id is not None else file_ref.session_id,
                file_path=file_ref.file_path,
            )

        job = ProcessingJob(job_id=uuid.uuid4().hex, file_ref=file_ref)
        with self._lock:
            self._jobs[job.job_id] = job
        self._queue.put(job.job_id)

        estimated = datetime.now(timezone.utc) + timedelta(seconds=ESTIMATED_DURATION_SEC)
        logging.info(f"Job {job.job_id} queued for session {file_ref.session_id}")
        return {
            "job_id": job.job_id,
            "status": job.status.value,
            "estimated_completion": estimated.isoformat(),
        }

    def get_job_status(self, job_id: str) -> Dict[str, Any]:
        """
        Current status of a job

        Raises:
            JobNotFoundError: If the job id is unknown
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(f"Job {job_id} not found")
            self._expire_if_overdue(job)
            return job.to_status()

    def get_report(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Most recent stored report for a session, or None"""
        store = self.orchestrator.store
        if store is None:
            return None
        return store.get_by_session(session_id)

    def list_jobs(self) -> List[Dict[str, Any]]:
        with self._lock:
            for job in self._jobs.values():
                self._expire_if_overdue(job)
            return [job.to_status() for job in self._jobs.values()]

    def _transition(self, job: ProcessingJob, status: JobStatus, message: str):
        """Apply a state change; caller holds the lock"""
        if not job.can_transition(status):
            raise InvalidJobTransition(
                f"Job {job.job_id}: {job.status.value} -> {status.value} not allowed"
            )
        job.status = status
        job.status_message = message
        if status is JobStatus.PROCESSING:
            job.started_at = time.monotonic()
        if status.is_terminal:
            job.completed_at = utc_now()
        logging.debug(f"Job {job.job_id} -> {status.value}: {message}")

    def _expire_if_overdue(self, job: ProcessingJob):
        """Fail a processing job that ran past the time limit; caller holds the lock"""
        if self.job_ttl is None or job.status is not JobStatus.PROCESSING:
            return
        if job.started_at is not None and time.monotonic() - job.started_at > self.job_ttl:
            self._transition(job, JobStatus.FAILED, "Job exceeded server time limit")
            logging.warning(f"Job {job.job_id} exceeded {self.job_ttl}s and was failed")

    def _worker_loop(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._process(item)
            finally:
                self._queue.task_done()

    def _process(self, job_id: str):
        with self._lock:
            job = self._jobs[job_id]
            self._transition(job, JobStatus.PROCESSING, "Analyzing recording")
            file_ref = job.file_ref

        try:
            report = self.orchestrator.run(file_ref, job_id=job_id, persist=False)
        except Exception as e:
            message = str(e) or type(e).__name__
            logging.error(f"Job {job_id} failed: {message}")
            with self._lock:
                if job.status is JobStatus.PROCESSING:
                    self._transition(job, JobStatus.FAILED, message)
            return

        with self._lock:
            self._expire_if_overdue(job)
            if job.status is not JobStatus.PROCESSING:
                logging.warning(f"Job {job_id} already {job.status.value}, discarding result")
                return
            try:
                report_id = self.orchestrator.persist(report)
            except Exception as e:
                message = str(e) or type(e).__name__
                logging.error(f"Job {job_id} could not store its report: {message}")
                self._transition(job, JobStatus.FAILED, message)
                return
            job.result = {"report_id": report_id, "session_id": file_ref.session_id}
            self._transition(job, JobStatus.COMPLETED, "Analysis complete")
        logging.info(f"Job {job_id} completed, report {report_id}")
