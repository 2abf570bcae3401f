"""
Pattern recognition and recommendations

This module flags channels with high artifact content, compares the session
with the patient's history and evaluates the recommendation rules.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..core.data_types import (
    CognitiveMetrics, Finding, PatternAnalysis, PreprocessedRecording, Recommendation,
    Severity, SpectralIndices,
)
from ..core.config import (
    ANOMALY_STD_THRESH, ANOMALY_MODERATE_FRACTION, ANOMALY_SEVERE_FRACTION,
)
from .history import RecentWindowTrend, TrendStrategy

MAD_TO_STD = 1.4826


@dataclass(frozen=True)
class RecommendationRule:
    """Threshold rule: emits `recommendation` when `applies` is true"""
    name: str
    applies: Callable[[CognitiveMetrics, SpectralIndices], bool]
    recommendation: Recommendation


DEFAULT_RULES: List[RecommendationRule] = [
    RecommendationRule(
        "attention",
        lambda m, i: m.attention < 70,
        Recommendation(
            category="Attention Training",
            priority="High",
            recommendation="Focus on beta uptraining protocols (13-21 Hz) at Cz electrode",
            duration="15-20 minutes, 3x weekly",
            expected_outcome="Improved sustained attention within 4-6 weeks",
        ),
    ),
    RecommendationRule(
        "relaxation",
        lambda m, i: m.relaxation < 60,
        Recommendation(
            category="Relaxation Training",
            priority="Medium",
            recommendation="Alpha enhancement training (8-12 Hz) at parietal sites",
            duration="20 minutes, 2x weekly",
            expected_outcome="Reduced stress and improved relaxation response",
        ),
    ),
    RecommendationRule(
        "sleep",
        lambda m, i: m.sleep_quality < 65,
        Recommendation(
            category="Sleep Enhancement",
            priority="High",
            recommendation="SMR training (12-15 Hz) combined with theta reduction",
            duration="30 minutes before bedtime, daily",
            expected_outcome="Improved sleep quality and duration",
        ),
    ),
    RecommendationRule(
        "working_memory",
        lambda m, i: m.working_memory < 75,
        Recommendation(
            category="Cognitive Enhancement",
            priority="Medium",
            recommendation="Working memory training with theta/beta ratio optimization",
            duration="25 minutes, 4x weekly",
            expected_outcome="Enhanced working memory and cognitive flexibility",
        ),
    ),
    RecommendationRule(
        "stress",
        lambda m, i: m.stress_level > 70,
        Recommendation(
            category="Stress Management",
            priority="Medium",
            recommendation="Progressive muscle relaxation with high-beta downtraining",
            duration="15 minutes, daily",
            expected_outcome="Lower cortical arousal and stress indicators",
        ),
    ),
    RecommendationRule(
        "asymmetry",
        lambda m, i: abs(i.frontal_alpha_asymmetry) > 0.2,
        Recommendation(
            category="Hemispheric Balance",
            priority="Low",
            recommendation="Frontal alpha asymmetry training at F3/F4",
            duration="20 minutes, 2x weekly",
            expected_outcome="More balanced frontal alpha activity",
        ),
    ),
]


class RecommendationEngine:
    """
    Evaluate independent threshold rules

    Rules are not mutually exclusive. Every matching rule is emitted, in
    rule declaration order; sorting by priority is left to the caller.
    """

    def __init__(self, rules: Sequence[RecommendationRule] = DEFAULT_RULES):
        self.rules = list(rules)

    def evaluate(self, metrics: CognitiveMetrics,
                 indices: Optional[SpectralIndices] = None) -> Tuple[Recommendation, ...]:
        indices = indices or SpectralIndices()
        matched = [rule for rule in self.rules if rule.applies(metrics, indices)]
        logging.debug(f"Recommendation rules matched: {[r.name for r in matched]}")
        return tuple(rule.recommendation for rule in matched)


class PatternRecognizer:
    """
    Anomaly detection, historical comparison and training targets

    The anomaly score of a channel is the fraction of samples that deviate
    from the channel centre by more than `std_thresh` standard deviations.
    Centre and spread are estimated robustly (median and 1.4826 x MAD) so
    injected artifacts do not inflate the spread that measures them.
    """

    def __init__(self, trend_strategy: Optional[TrendStrategy] = None,
                 std_thresh: float = ANOMALY_STD_THRESH,
                 moderate_fraction: float = ANOMALY_MODERATE_FRACTION,
                 severe_fraction: float = ANOMALY_SEVERE_FRACTION):
        self.trend_strategy = trend_strategy or RecentWindowTrend()
        self.std_thresh = std_thresh
        self.moderate_fraction = moderate_fraction
        self.severe_fraction = severe_fraction

    def anomaly_fraction(self, data: np.ndarray) -> float:
        """Fraction of samples beyond the deviation threshold"""
        data = np.asarray(data, dtype=np.float64)
        if data.size == 0:
            return 0.0
        center = np.median(data)
        deviation = np.abs(data - center)
        scale = MAD_TO_STD * np.median(deviation)
        return float(np.count_nonzero(deviation > self.std_thresh * scale) / data.size)

    def classify(self, fraction: float) -> Severity:
        """Severity tier for an anomalous-sample fraction"""
        if fraction > self.severe_fraction:
            return Severity.SEVERE
        if fraction > self.moderate_fraction:
            return Severity.MODERATE
        return Severity.NONE

    def detect_anomalies(self, preprocessed: PreprocessedRecording) -> Tuple[Finding, ...]:
        """
        Flag channels with high artifact content

        Scored on the filtered, baseline-corrected signal before artifact
        rejection zeroes the outliers.
        """
        findings = []
        for ch, label in enumerate(preprocessed.labels):
            fraction = self.anomaly_fraction(preprocessed.baseline[ch])
            severity = self.classify(fraction)
            if severity is Severity.NONE:
                continue
            findings.append(Finding(
                region=label,
                description="High artifact content",
                severity=severity,
                abnormal=True,
                artifact_fraction=fraction,
            ))
        if findings:
            logging.warning(f"Artifact findings on {len(findings)} channels")
        return tuple(findings)

    @staticmethod
    def neurofeedback_targets(metrics: CognitiveMetrics, indices: SpectralIndices) -> Tuple[str, ...]:
        """Training targets suggested by the scores"""
        targets = []
        if indices.beta_theta_ratio < 1:
            targets.append("Theta reduction")
        if metrics.relaxation < 60:
            targets.append("Alpha enhancement")
        if metrics.sleep_quality < 65:
            targets.append("SMR increase")
        if metrics.attention < 70:
            targets.append("Beta training")
        return tuple(targets)

    def analyze(self, preprocessed: PreprocessedRecording, metrics: CognitiveMetrics,
                indices: SpectralIndices, history: List[Dict[str, Any]]) -> PatternAnalysis:
        """
        Run all pattern checks for one session

        Args:
            preprocessed: Preprocessor output
            metrics: Derived scores
            indices: Spectral ratios
            history: Prior report snapshots for the patient, newest first

        Returns:
            PatternAnalysis
        """
        progress = self.trend_strategy.compare(metrics, history)
        logging.info(f"Progress against {len(history)} prior reports: {progress}")
        return PatternAnalysis(
            anomalies=self.detect_anomalies(preprocessed),
            progress=progress,
            neurofeedback_targets=self.neurofeedback_targets(metrics, indices),
            history_size=len(history),
        )
