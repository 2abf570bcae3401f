"""
Core data types for qEEG Engine

This module defines the data structures passed between pipeline stages:
the parsed recording, intermediate signal/spectral results, the final
analysis report and the processing job record.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np


def utc_now() -> str:
    """ISO-8601 UTC timestamp"""
    return datetime.now(timezone.utc).isoformat()


def normalize_label(label: str) -> str:
    """Canonical electrode name used for channel-group lookups ("EEG Fp1 " -> "fp1")"""
    name = label.strip()
    if name.upper().startswith("EEG "):
        name = name[4:].strip()
    return name.lower()


class Severity(str, Enum):
    """Finding severity tiers, ordered"""
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

    @property
    def rank(self) -> int:
        return list(Severity).index(self)


class JobStatus(str, Enum):
    """Processing job states"""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# ============================================================================
# RECORDING
# ============================================================================

@dataclass(frozen=True)
class RecordingHeader:
    """Decoded fixed-layout header of a recording container"""
    version: str
    patient_tag: str
    recording_tag: str
    start_date: str
    start_time: str
    header_bytes: int
    data_record_count: int
    record_duration: float        # Seconds per data record
    channel_count: int
    channel_labels: Tuple[str, ...]
    samples_per_record: int = 0
    sampling_rate: float = 0.0

    @property
    def samples_per_channel(self) -> int:
        return self.data_record_count * self.samples_per_record

    @property
    def duration_sec(self) -> float:
        return self.data_record_count * self.record_duration

    def summary(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "recording_date": self.start_date,
            "recording_time": self.start_time,
            "duration_sec": float(self.duration_sec),
            "sampling_rate": float(self.sampling_rate),
            "channel_count": self.channel_count,
            "electrodes": list(self.channel_labels),
            "data_record_count": self.data_record_count,
            "samples_per_record": self.samples_per_record,
        }


@dataclass(frozen=True)
class Recording:
    """Parsed recording: header plus one int16 series per channel"""
    header: RecordingHeader
    samples: np.ndarray           # Shape: (n_channels, n_samples), int16

    @property
    def labels(self) -> Tuple[str, ...]:
        return self.header.channel_labels

    @property
    def fs(self) -> float:
        return self.header.sampling_rate

    def channel(self, label: str) -> np.ndarray:
        return self.samples[self.labels.index(label)]


@dataclass
class PreprocessedRecording:
    """Output of the signal preprocessor"""
    fs: float
    labels: Tuple[str, ...]
    cleaned: np.ndarray           # After artifact rejection (channels x samples)
    baseline: np.ndarray          # Filtered + baseline-corrected, before rejection
    artifact_fraction: Dict[str, float]
    flat_channels: List[str] = field(default_factory=list)

    def channel(self, label: str) -> np.ndarray:
        return self.cleaned[self.labels.index(label)]

    @property
    def mean_artifact_fraction(self) -> float:
        if not self.artifact_fraction:
            return 0.0
        return float(np.mean(list(self.artifact_fraction.values())))


# ============================================================================
# ANALYSIS RESULTS
# ============================================================================

@dataclass(frozen=True)
class ChannelSpectrum:
    """Band powers and frequency metrics for one channel"""
    channel: str
    absolute_powers: Dict[str, float]
    relative_powers: Dict[str, float]
    dominant_frequency: float = 0.0
    spectral_edge_frequency: float = 0.0
    peak_alpha_frequency: float = 0.0

    @property
    def total_power(self) -> float:
        return float(sum(self.absolute_powers.values()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "absolute_powers": {k: float(v) for k, v in self.absolute_powers.items()},
            "relative_powers": {k: float(v) for k, v in self.relative_powers.items()},
            "dominant_frequency": float(self.dominant_frequency),
            "spectral_edge_frequency": float(self.spectral_edge_frequency),
            "peak_alpha_frequency": float(self.peak_alpha_frequency),
        }


@dataclass(frozen=True)
class ConnectivityEdge:
    """Connectivity between an unordered channel pair"""
    channel_a: str
    channel_b: str
    coherence: float
    phase: float
    correlation: float

    @property
    def key(self) -> str:
        return f"{self.channel_a}-{self.channel_b}"

    def to_dict(self) -> Dict[str, float]:
        return {
            "coherence": float(self.coherence),
            "phase": float(self.phase),
            "correlation": float(self.correlation),
        }


@dataclass(frozen=True)
class CognitiveMetrics:
    """Derived scores, each in [0, 100]"""
    attention: float
    relaxation: float
    working_memory: float
    processing_speed: float
    executive_function: float
    sleep_quality: float
    stress_level: float
    alpha_activity: float
    delta_activity: float

    def to_dict(self) -> Dict[str, float]:
        return {k: float(v) for k, v in self.__dict__.items()}


@dataclass(frozen=True)
class SpectralIndices:
    """Unbounded spectral ratios reported alongside the scores"""
    beta_theta_ratio: float = 0.0
    focus_index: float = 0.0
    fatigue_index: float = 0.0
    frontal_alpha_asymmetry: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {k: float(v) for k, v in self.__dict__.items()}


@dataclass(frozen=True)
class Finding:
    """A flagged observation about one region/channel"""
    region: str
    description: str
    severity: Severity = Severity.NONE
    abnormal: bool = False
    artifact_fraction: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "region": self.region,
            "description": self.description,
            "severity": self.severity.value,
            "abnormal": self.abnormal,
            "artifact_fraction": float(self.artifact_fraction),
        }


@dataclass(frozen=True)
class Recommendation:
    """Rule-based training suggestion"""
    category: str
    priority: str
    recommendation: str
    duration: str
    expected_outcome: str

    def to_dict(self) -> Dict[str, str]:
        return dict(self.__dict__)


@dataclass(frozen=True)
class PatternAnalysis:
    """Anomalies, trend against history and training targets"""
    anomalies: Tuple[Finding, ...]
    progress: str
    neurofeedback_targets: Tuple[str, ...] = ()
    history_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "anomalies": [f.to_dict() for f in self.anomalies],
            "progress": self.progress,
            "neurofeedback_targets": list(self.neurofeedback_targets),
            "history_size": self.history_size,
        }


@dataclass(frozen=True)
class AnalysisReport:
    """Complete result of one pipeline run. Never revised once persisted."""
    report_id: str
    patient_id: str
    session_id: str
    recording: Dict[str, Any]
    spectra: Dict[str, ChannelSpectrum]
    connectivity: Dict[str, ConnectivityEdge]
    metrics: CognitiveMetrics
    indices: SpectralIndices
    patterns: PatternAnalysis
    recommendations: Tuple[Recommendation, ...]
    quality_score: float
    artifact_fraction: float
    job_id: Optional[str] = None
    created_at: str = field(default_factory=utc_now)
    processing_seconds: float = 0.0
    algorithm_version: str = ""

    @property
    def findings(self) -> Tuple[Finding, ...]:
        return self.patterns.anomalies

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "job_id": self.job_id,
            "patient_id": self.patient_id,
            "session_id": self.session_id,
            "created_at": self.created_at,
            "algorithm_version": self.algorithm_version,
            "processing_seconds": float(self.processing_seconds),
            "recording": dict(self.recording),
            "frequency_analysis": {ch: s.to_dict() for ch, s in self.spectra.items()},
            "connectivity": {k: e.to_dict() for k, e in self.connectivity.items()},
            "cognitive_metrics": self.metrics.to_dict(),
            "spectral_indices": self.indices.to_dict(),
            "pattern_analysis": self.patterns.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "quality_score": float(self.quality_score),
            "artifact_fraction": float(self.artifact_fraction),
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)


# ============================================================================
# JOBS
# ============================================================================

@dataclass(frozen=True)
class FileRef:
    """Reference to an uploaded recording"""
    patient_id: str
    session_id: str
    file_path: str


_ALLOWED_TRANSITIONS = {
    JobStatus.QUEUED: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


@dataclass
class ProcessingJob:
    """One asynchronous analysis run. Owned by the job manager's worker."""
    job_id: str
    file_ref: FileRef
    status: JobStatus = JobStatus.QUEUED
    status_message: str = "Queued for analysis"
    created_at: str = field(default_factory=utc_now)
    started_at: Optional[float] = None    # Monotonic clock, for the TTL
    completed_at: Optional[str] = None
    result: Optional[Dict[str, Any]] = None

    def can_transition(self, new_status: JobStatus) -> bool:
        return new_status in _ALLOWED_TRANSITIONS[self.status]

    def to_status(self) -> Dict[str, Any]:
        status = {
            "job_id": self.job_id,
            "status": self.status.value,
            "status_message": self.status_message,
            "created_at": self.created_at,
        }
        if self.completed_at is not None:
            status["completed_at"] = self.completed_at
        if self.result is not None:
            status["results"] = dict(self.result)
        return status
