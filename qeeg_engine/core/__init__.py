"""
Core data types, configuration and errors for qEEG Engine

This module contains the fundamental data classes used throughout the system.
"""

from .data_types import (
    RecordingHeader, Recording, PreprocessedRecording, ChannelSpectrum,
    ConnectivityEdge, CognitiveMetrics, SpectralIndices, Finding, Severity,
    Recommendation, PatternAnalysis, AnalysisReport, FileRef, ProcessingJob,
    JobStatus,
)
from .exceptions import (
    QEEGError, FormatError, PreprocessingError, AnalysisError,
    JobNotFoundError, InvalidJobTransition, JobTimeoutError, ReportExistsError,
)
from .config import *

__all__ = [
    'RecordingHeader', 'Recording', 'PreprocessedRecording', 'ChannelSpectrum',
    'ConnectivityEdge', 'CognitiveMetrics', 'SpectralIndices', 'Finding', 'Severity',
    'Recommendation', 'PatternAnalysis', 'AnalysisReport', 'FileRef', 'ProcessingJob',
    'JobStatus',
    'QEEGError', 'FormatError', 'PreprocessingError', 'AnalysisError',
    'JobNotFoundError', 'InvalidJobTransition', 'JobTimeoutError', 'ReportExistsError',
]
