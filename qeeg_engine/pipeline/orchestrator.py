"""
Analysis orchestration

This module sequences parsing, preprocessing, spectral and connectivity
analysis, metric derivation and pattern recognition into one immutable
AnalysisReport, and persists it.
"""

import logging
import time
import uuid
from pathlib import Path
from typing import Callable, Optional, Type


from ..core.data_types import AnalysisReport, FileRef, PreprocessedRecording
from ..core.exceptions import QEEGError, FormatError, PreprocessingError, AnalysisError
from ..core.config import AnalysisConfig, ALGORITHM_VERSION, QUALITY_ANOMALY_PENALTY
from ..acquisition.recording_parser import RecordingParser
from ..processing.preprocessor import Preprocessor
from ..processing.spectral import SpectralAnalyzer
from ..processing.connectivity import ConnectivityAnalyzer
from ..detection.metrics import MetricsDeriver, clamp_score
from ..detection.patterns import PatternRecognizer, RecommendationEngine
from ..detection.history import TrendStrategy
from ..storage.report_store import ReportStore


def quality_score(preprocessed: PreprocessedRecording, findings: tuple) -> float:
    """
    Heuristic data quality in [0, 100]

    Loses one point per percent of rejected samples (flat channels count as
    fully rejected) and a fixed penalty per anomaly finding.
    """
    score = 100.0 * (1.0 - preprocessed.mean_artifact_fraction)
    score -= QUALITY_ANOMALY_PENALTY * len(findings)
    return round(clamp_score(score), 1)


def _run_stage(name: str, error: Type[QEEGError], func: Callable, *args):
    """Run one stage, surfacing unexpected failures as the stage's error type"""
    try:
        return func(*args)
    except QEEGError:
        raise
    except Exception as e:
        raise error(f"{name} failed: {e}") from e


class AnalysisOrchestrator:
    """
    Run the full pipeline for one recording

    Stages run strictly in order, each on the complete output of the
    previous one. A failing stage aborts the run; nothing is persisted.
    """

    def __init__(self, store: Optional[ReportStore] = None,
                 config: Optional[AnalysisConfig] = None,
                 trend_strategy: Optional[TrendStrategy] = None,
                 recommendation_engine: Optional[RecommendationEngine] = None):
        self.store = store
        self.config = config or AnalysisConfig()
        self.metrics_deriver = MetricsDeriver(self.config.electrode_groups)
        self.pattern_recognizer = PatternRecognizer(trend_strategy)
        self.recommendation_engine = recommendation_engine or RecommendationEngine()

    def analyze(self, data: bytes, patient_id: str, session_id: str,
                job_id: Optional[str] = None) -> AnalysisReport:
        """
        Analyze recording bytes into a report (not persisted)

        Raises:
            FormatError, PreprocessingError, AnalysisError
        """
        started = time.perf_counter()
        cfg = self.config
        logging.info(f"Analyzing session {session_id} for patient {patient_id}")

        recording = _run_stage("Parsing", FormatError,
                               RecordingParser(cfg.sampling_rate).parse, data)
        fs = recording.fs

        preprocessor = _run_stage("Filter design", PreprocessingError, Preprocessor,
                                  fs, cfg.notch_hz, cfg.bandpass, cfg.artifact_std_thresh)
        preprocessed = _run_stage("Preprocessing", PreprocessingError,
                                  preprocessor.process, recording)

        spectra = _run_stage("Spectral analysis", AnalysisError,
                             SpectralAnalyzer(fs, window_max=cfg.psd_window_max).analyze,
                             preprocessed)
        connectivity = _run_stage("Connectivity analysis", AnalysisError,
                                  ConnectivityAnalyzer(fs, n_jobs=cfg.connectivity_n_jobs).analyze,
                                  preprocessed)

        metrics = _run_stage("Metric derivation", AnalysisError,
                             self.metrics_deriver.derive, spectra, connectivity)
        indices = _run_stage("Metric derivation", AnalysisError,
                             self.metrics_deriver.indices, spectra)

        history = _run_stage("History lookup", AnalysisError,
                             self.store.recent_for_patient, patient_id,
                             cfg.history_limit) if self.store else []
        patterns = _run_stage("Pattern recognition", AnalysisError,
                              self.pattern_recognizer.analyze,
                              preprocessed, metrics, indices, history)
        recommendations = _run_stage("Recommendations", AnalysisError,
                                     self.recommendation_engine.evaluate, metrics, indices)

        report = AnalysisReport(
            report_id=job_id or uuid.uuid4().hex,
            job_id=job_id,
            patient_id=patient_id,
            session_id=session_id,
            recording=recording.header.summary(),
            spectra=spectra,
            connectivity=connectivity,
            metrics=metrics,
            indices=indices,
            patterns=patterns,
            recommendations=recommendations,
            quality_score=quality_score(preprocessed, patterns.anomalies),
            artifact_fraction=round(preprocessed.mean_artifact_fraction, 4),
            processing_seconds=round(time.perf_counter() - started, 3),
            algorithm_version=ALGORITHM_VERSION,
        )
        logging.info(
            f"Session {session_id} analyzed: quality {report.quality_score}, "
            f"{len(patterns.anomalies)} findings, {len(recommendations)} recommendations"
        )
        return report

    def persist(self, report: AnalysisReport) -> str:
        """Store a finished report; returns its id"""
        if self.store is None:
            logging.info("No report store configured, report not persisted")
            return report.report_id
        return self.store.save(report)

    def run(self, file_ref: FileRef, job_id: Optional[str] = None,
            persist: bool = True) -> AnalysisReport:
        """
        Read, analyze and (optionally) persist an uploaded recording

        Args:
            file_ref: Location of the uploaded recording
            job_id: Owning job; also used as the report id
            persist: Store the report when analysis succeeds

        Returns:
            AnalysisReport
        """
        data = Path(file_ref.file_path).read_bytes()
        report = self.analyze(data, file_ref.patient_id, file_ref.session_id, job_id)
        if persist:
            self.persist(report)
        return report
