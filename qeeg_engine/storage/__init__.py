"""
Report persistence

This module stores finished analysis reports as JSON snapshots.
"""

from .report_store import ReportStore, InMemoryReportStore, JsonReportStore

__all__ = ['ReportStore', 'InMemoryReportStore', 'JsonReportStore']
