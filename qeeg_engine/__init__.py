"""
qEEG Engine - Quantitative EEG analysis service

A modular Python package for parsing uploaded EEG recordings, running the
signal processing and scoring pipeline, and managing asynchronous analysis
jobs and their stored reports.

Python: 3.10+
"""

__version__ = "2.1.0"

# Main package imports for easy access
from .core.data_types import AnalysisReport, FileRef, Recording, JobStatus
from .core.config import AnalysisConfig
from .core.exceptions import (
    QEEGError, FormatError, PreprocessingError, AnalysisError,
    JobNotFoundError, JobTimeoutError,
)
from .acquisition.recording_parser import RecordingParser, parse_recording, read_recording
from .acquisition.synthetic import SyntheticEEG, encode_recording
from .pipeline.orchestrator import AnalysisOrchestrator
from .storage.report_store import InMemoryReportStore, JsonReportStore
from .jobs.manager import JobLifecycleManager
from .jobs.poller import JobStatusPoller

__all__ = [
    'AnalysisReport', 'FileRef', 'Recording', 'JobStatus', 'AnalysisConfig',
    'QEEGError', 'FormatError', 'PreprocessingError', 'AnalysisError',
    'JobNotFoundError', 'JobTimeoutError',
    'RecordingParser', 'parse_recording', 'read_recording',
    'SyntheticEEG', 'encode_recording',
    'AnalysisOrchestrator', 'InMemoryReportStore', 'JsonReportStore',
    'JobLifecycleManager', 'JobStatusPoller',
]
