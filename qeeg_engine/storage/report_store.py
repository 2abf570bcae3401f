"""
Analysis report persistence

Reports are stored as JSON snapshots, written once and never revised.
Readers always get a fresh copy of the snapshot, so nothing outside the
store can alter a persisted report.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..core.data_types import AnalysisReport
from ..core.exceptions import ReportExistsError
from ..core.config import HISTORY_LIMIT, REPORT_DIR


class ReportStore(ABC):
    """Write-once store of report snapshots"""

    @abstractmethod
    def save(self, report: AnalysisReport) -> str:
        """
        Persist a report

        Returns:
            str: The report id

        Raises:
            ReportExistsError: If the report id is already stored
        """

    @abstractmethod
    def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        """Snapshot for a report id, or None"""

    @abstractmethod
    def _snapshots(self) -> List[Dict[str, Any]]:
        """All stored snapshots in write order"""

    def get_by_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Most recent snapshot for a session, or None"""
        matches = [r for r in self._snapshots() if r.get("session_id") == session_id]
        return matches[-1] if matches else None

    def recent_for_patient(self, patient_id: str, limit: int = HISTORY_LIMIT) -> List[Dict[str, Any]]:
        """Up to `limit` snapshots for a patient, newest first"""
        matches = [r for r in self._snapshots() if r.get("patient_id") == patient_id]
        matches.reverse()
        return matches[:limit]


class InMemoryReportStore(ReportStore):
    """Process-local store, mainly for tests and the CLI"""

    def __init__(self):
        self._lock = threading.Lock()
        self._reports: Dict[str, str] = {}    # report_id -> JSON text, insertion ordered

    def save(self, report: AnalysisReport) -> str:
        text = report.to_json()
        with self._lock:
            if report.report_id in self._reports:
                raise ReportExistsError(f"Report {report.report_id} already stored")
            self._reports[report.report_id] = text
        logging.info(f"Stored report {report.report_id} for session {report.session_id}")
        return report.report_id

    def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            text = self._reports.get(report_id)
        return json.loads(text) if text is not None else None

    def _snapshots(self) -> List[Dict[str, Any]]:
        with self._lock:
            texts = list(self._reports.values())
        return [json.loads(t) for t in texts]


class JsonReportStore(ReportStore):
    """
    One JSON file per report in a directory

    Files are written to a temporary name and renamed into place, so a
    reader never sees a partially written report.
    """

    def __init__(self, directory: Union[str, Path] = REPORT_DIR):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, report_id: str) -> Path:
        return self.directory / f"{report_id}.json"

    def save(self, report: AnalysisReport) -> str:
        path = self._path(report.report_id)
        text = report.to_json(indent=2)
        with self._lock:
            if path.exists():
                raise ReportExistsError(f"Report {report.report_id} already stored")
            fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp, path)
            except OSError:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        logging.info(f"Stored report {report.report_id} at {path}")
        return report.report_id

    def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(report_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _snapshots(self) -> List[Dict[str, Any]]:
        snapshots = []
        for path in self.directory.glob("*.json"):
            with open(path, "r", encoding="utf-8") as f:
                snapshots.append(json.load(f))
        snapshots.sort(key=lambda r: r.get("created_at", ""))
        return snapshots
