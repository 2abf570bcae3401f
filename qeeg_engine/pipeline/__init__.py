"""
Analysis pipeline

This module wires the processing stages into a single report-producing run.
"""

from .orchestrator import AnalysisOrchestrator, quality_score

__all__ = ['AnalysisOrchestrator', 'quality_score']
