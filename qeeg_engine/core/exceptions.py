"""
Exception hierarchy for qEEG Engine

Pipeline stages raise FormatError, PreprocessingError or AnalysisError; the
job service turns any of them into a failed job. JobTimeoutError is raised
only by the client-side poller and never changes server state.
"""

from typing import Any, Dict, Optional


class QEEGError(Exception):
    """Base class for all qEEG Engine errors"""


class FormatError(QEEGError):
    """Recording container is malformed (header, label table or payload)"""


class PreprocessingError(QEEGError):
    """A filtering/cleanup stage could not process a channel"""


class AnalysisError(QEEGError):
    """Spectral, connectivity, metric or pattern computation failed"""


class JobNotFoundError(QEEGError):
    """No job exists for the given id"""


class InvalidJobTransition(QEEGError):
    """A job state change that the lifecycle does not allow"""


class ReportExistsError(QEEGError):
    """A report with this id has already been persisted"""


class JobTimeoutError(QEEGError):
    """Client poll ceiling reached before the job reached a terminal state"""

    def __init__(self, job_id: str, attempts: int,
                 last_status: Optional[Dict[str, Any]] = None):
        self.job_id = job_id
        self.attempts = attempts
        self.last_status = last_status
        observed = last_status.get("status") if last_status else "unknown"
        super().__init__(
            f"Job {job_id} not finished after {attempts} polls (last status: {observed})"
        )
