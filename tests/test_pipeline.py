"""
Tests for the analysis orchestrator and report stores
"""

import json

import numpy as np
import pytest

from qeeg_engine.acquisition.synthetic import STANDARD_MONTAGE, encode_recording
from qeeg_engine.core.config import ALGORITHM_VERSION, AnalysisConfig
from qeeg_engine.core.data_types import FileRef, PreprocessedRecording
from qeeg_engine.core.exceptions import AnalysisError, FormatError, ReportExistsError
from qeeg_engine.detection.history import BASELINE, TrendStrategy
from qeeg_engine.pipeline.orchestrator import AnalysisOrchestrator, quality_score
from qeeg_engine.storage.report_store import InMemoryReportStore, JsonReportStore

from .conftest import make_report


# ----------------------------------------------------------------------------
# Orchestrator
# ----------------------------------------------------------------------------

def test_full_analysis(orchestrator, store, synthetic_bytes):
    report = orchestrator.analyze(synthetic_bytes, "p1", "s1")

    assert len(report.spectra) == 19
    assert len(report.connectivity) == 19 * 18 // 2
    assert report.recording["channel_count"] == 19
    assert report.recording["sampling_rate"] == 256.0
    assert report.algorithm_version == ALGORITHM_VERSION
    assert report.patterns.progress == BASELINE
    assert 0.0 <= report.quality_score <= 100.0
    for value in report.metrics.to_dict().values():
        assert 0.0 <= value <= 100.0
    for spectrum in report.spectra.values():
        assert sum(spectrum.relative_powers.values()) == pytest.approx(100.0)

    # analyze() alone does not persist
    assert store.get(report.report_id) is None


def test_report_serializes(orchestrator, synthetic_bytes):
    report = orchestrator.analyze(synthetic_bytes, "p1", "s1", job_id="job-1")
    data = json.loads(report.to_json())
    assert data["report_id"] == "job-1"
    assert data["job_id"] == "job-1"
    assert set(data["frequency_analysis"]) == set(STANDARD_MONTAGE)
    assert "Fp1-Fp2" in data["connectivity"]


def test_run_persists(orchestrator, store, synthetic_bytes, write_file):
    path = write_file("s1.edf", synthetic_bytes)
    report = orchestrator.run(FileRef("p1", "s1", path))
    stored = store.get(report.report_id)
    assert stored == json.loads(report.to_json())


def test_deterministic(synthetic_bytes):
    config = AnalysisConfig(connectivity_n_jobs=1)
    first = AnalysisOrchestrator(config=config).analyze(synthetic_bytes, "p1", "s1")
    second = AnalysisOrchestrator(config=AnalysisConfig(connectivity_n_jobs=2)).analyze(
        synthetic_bytes, "p1", "s1")
    assert first.metrics == second.metrics
    assert first.connectivity == second.connectivity
    assert first.quality_score == second.quality_score


def test_format_error_persists_nothing(orchestrator, store, corrupt_bytes, write_file):
    path = write_file("bad.edf", corrupt_bytes)
    with pytest.raises(FormatError):
        orchestrator.run(FileRef("p1", "s1", path))
    assert store.get_by_session("s1") is None
    assert store.recent_for_patient("p1") == []


def test_history_feeds_trend(orchestrator, store, synthetic_bytes):
    orchestrator.persist(orchestrator.analyze(synthetic_bytes, "p1", "s1"))
    orchestrator.persist(orchestrator.analyze(synthetic_bytes, "p1", "s2"))
    third = orchestrator.analyze(synthetic_bytes, "p1", "s3")
    other = orchestrator.analyze(synthetic_bytes, "p2", "s4")

    assert third.patterns.history_size == 2
    assert third.patterns.progress == "stable"
    assert other.patterns.history_size == 0


def test_pluggable_trend_strategy(store, synthetic_bytes):
    class AlwaysImproving(TrendStrategy):
        def compare(self, metrics, history):
            return "improving"

    orchestrator = AnalysisOrchestrator(store=store, trend_strategy=AlwaysImproving(),
                                        config=AnalysisConfig(connectivity_n_jobs=1))
    assert orchestrator.analyze(synthetic_bytes, "p1", "s1").patterns.progress == "improving"


def test_history_lookup_failure_is_analysis_error(synthetic_bytes):
    class UnreadableStore(InMemoryReportStore):
        def recent_for_patient(self, patient_id, limit=10):
            raise OSError("store offline")

    orchestrator = AnalysisOrchestrator(store=UnreadableStore(),
                                        config=AnalysisConfig(connectivity_n_jobs=1))
    with pytest.raises(AnalysisError, match="History lookup failed"):
        orchestrator.analyze(synthetic_bytes, "p1", "s1")


def test_persist_without_store(synthetic_bytes):
    orchestrator = AnalysisOrchestrator(config=AnalysisConfig(connectivity_n_jobs=1))
    report = orchestrator.analyze(synthetic_bytes, "p1", "s1")
    assert orchestrator.persist(report) == report.report_id


def test_quality_score():
    pre = PreprocessedRecording(
        fs=256.0, labels=("a", "b"), cleaned=np.zeros((2, 4)), baseline=np.zeros((2, 4)),
        artifact_fraction={"a": 0.1, "b": 0.3},
    )
    assert quality_score(pre, ()) == 80.0
    assert quality_score(pre, ("f1", "f2")) == 70.0
    pre.artifact_fraction = {"a": 1.0, "b": 1.0}
    assert quality_score(pre, ("f1",)) == 0.0


def test_all_zero_recording(store):
    data = encode_recording(np.zeros((19, 256 * 60)), STANDARD_MONTAGE, fs=256.0)
    orchestrator = AnalysisOrchestrator(store=store, config=AnalysisConfig(connectivity_n_jobs=1))
    report = orchestrator.analyze(data, "p1", "zeros")

    for spectrum in report.spectra.values():
        assert all(v == 0.0 for v in spectrum.absolute_powers.values())
        assert all(v == 0.0 for v in spectrum.relative_powers.values())
    assert report.quality_score == 0.0
    assert report.artifact_fraction == 1.0
    assert report.findings == ()


# ----------------------------------------------------------------------------
# Report stores
# ----------------------------------------------------------------------------

@pytest.fixture(params=["memory", "json"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryReportStore()
    return JsonReportStore(tmp_path / "reports")


def test_store_write_once(any_store):
    report = make_report("r1")
    assert any_store.save(report) == "r1"
    with pytest.raises(ReportExistsError):
        any_store.save(make_report("r1", attention=10.0))
    assert any_store.get("r1")["cognitive_metrics"]["attention"] == 80.0


def test_store_returns_copies(any_store):
    any_store.save(make_report("r1"))
    snapshot = any_store.get("r1")
    snapshot["quality_score"] = -1
    assert any_store.get("r1")["quality_score"] == 100.0


def test_store_missing(any_store):
    assert any_store.get("nope") is None
    assert any_store.get_by_session("nope") is None


def test_recent_for_patient_newest_first(any_store):
    for i in range(12):
        any_store.save(make_report(f"r{i:02d}", created_at=f"2026-01-01T00:00:{i:02d}+00:00"))
    any_store.save(make_report("other", patient_id="p2"))

    recent = any_store.recent_for_patient("p1", limit=10)
    assert [r["report_id"] for r in recent] == [f"r{i:02d}" for i in range(11, 1, -1)]


def test_get_by_session_latest(any_store):
    any_store.save(make_report("a", session_id="s1", created_at="2026-01-01T00:00:00+00:00"))
    any_store.save(make_report("b", session_id="s1", created_at="2026-01-02T00:00:00+00:00"))
    assert any_store.get_by_session("s1")["report_id"] == "b"


def test_json_store_survives_reopen(tmp_path):
    JsonReportStore(tmp_path).save(make_report("r1"))
    assert JsonReportStore(tmp_path).get("r1")["report_id"] == "r1"
    assert not list(tmp_path.glob("*.tmp"))
