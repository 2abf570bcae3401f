"""
Metric derivation and pattern recognition

This module turns spectral and connectivity results into cognitive scores,
anomaly findings, trends and recommendations.
"""

from .metrics import MetricsDeriver
from .patterns import PatternRecognizer, RecommendationEngine, RecommendationRule, DEFAULT_RULES
from .history import TrendStrategy, RecentWindowTrend

__all__ = [
    'MetricsDeriver',
    'PatternRecognizer', 'RecommendationEngine', 'RecommendationRule', 'DEFAULT_RULES',
    'TrendStrategy', 'RecentWindowTrend',
]
