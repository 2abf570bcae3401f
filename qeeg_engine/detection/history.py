"""
Historical trend strategies

A trend strategy compares the current session's metrics against the
patient's prior report snapshots (newest first) and returns a qualitative
label. The default looks at a short recency window; other strategies can be
plugged into the PatternRecognizer without touching the pipeline.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

import numpy as np

from ..core.data_types import CognitiveMetrics
from ..core.config import HISTORY_LIMIT, TREND_MARGIN

BASELINE = "baseline"
IMPROVING = "improving"
STABLE = "stable"
WORSENING = "worsening"

COMPOSITE_FIELDS = ("attention", "relaxation", "working_memory")


def composite_score(metrics: Dict[str, Any]) -> float:
    """Mean of the scores that make up the progress composite"""
    return float(np.mean([float(metrics.get(name, 0.0)) for name in COMPOSITE_FIELDS]))


class TrendStrategy(ABC):
    """Interface for comparing a session with the patient's history"""

    @abstractmethod
    def compare(self, metrics: CognitiveMetrics, history: List[Dict[str, Any]]) -> str:
        """
        Args:
            metrics: Current session's scores
            history: Prior report snapshots, newest first

        Returns:
            str: Trend label
        """


class RecentWindowTrend(TrendStrategy):
    """
    Compare against the mean composite of the most recent reports

    Not a statistical model: the current composite is compared with the
    plain mean of up to `limit` prior composites, and a change larger than
    `margin` points in either direction counts as a trend.
    """

    def __init__(self, limit: int = HISTORY_LIMIT, margin: float = TREND_MARGIN):
        self.limit = limit
        self.margin = margin

    def compare(self, metrics: CognitiveMetrics, history: List[Dict[str, Any]]) -> str:
        prior = [composite_score(r["cognitive_metrics"])
                 for r in history[:self.limit] if "cognitive_metrics" in r]
        if not prior:
            return BASELINE

        change = composite_score(metrics.to_dict()) - float(np.mean(prior))
        if change > self.margin:
            return IMPROVING
        if change < -self.margin:
            return WORSENING
        return STABLE
