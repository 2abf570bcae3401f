"""
Shared fixtures for the qEEG Engine test suite
"""

import numpy as np
import pytest

from qeeg_engine.acquisition.synthetic import STANDARD_MONTAGE, SyntheticEEG, encode_recording
from qeeg_engine.core.config import AnalysisConfig
from qeeg_engine.core.data_types import (
    AnalysisReport, ChannelSpectrum, CognitiveMetrics, PatternAnalysis, Recording,
    RecordingHeader, SpectralIndices,
)
from qeeg_engine.pipeline.orchestrator import AnalysisOrchestrator
from qeeg_engine.storage.report_store import InMemoryReportStore

BANDS = ("delta", "theta", "alpha", "beta", "gamma")


def make_recording(samples, labels, fs=256.0):
    """Build a Recording directly, bypassing the container format"""
    samples = np.asarray(samples, dtype=np.int16)
    header = RecordingHeader(
        version="0", patient_tag="", recording_tag="", start_date="01.01.26",
        start_time="00.00.00", header_bytes=256 + 16 * len(labels),
        data_record_count=1, record_duration=samples.shape[1] / fs if samples.shape[1] else 1.0,
        channel_count=len(labels), channel_labels=tuple(labels),
        samples_per_record=samples.shape[1], sampling_rate=fs,
    )
    return Recording(header=header, samples=samples)


def make_spectrum(label, relative=None, absolute=None):
    relative = {band: 0.0 for band in BANDS} | (relative or {})
    absolute = {band: 0.0 for band in BANDS} | (absolute or {})
    return ChannelSpectrum(channel=label, absolute_powers=absolute, relative_powers=relative)


def make_metrics(**overrides):
    values = dict(attention=80.0, relaxation=80.0, working_memory=80.0,
                  processing_speed=50.0, executive_function=50.0, sleep_quality=80.0,
                  stress_level=20.0, alpha_activity=40.0, delta_activity=20.0)
    values.update(overrides)
    return CognitiveMetrics(**values)


def make_report(report_id, patient_id="p1", session_id="s1", created_at=None, **metric_overrides):
    """Minimal report, for store and history tests"""
    kwargs = {}
    if created_at is not None:
        kwargs["created_at"] = created_at
    return AnalysisReport(
        report_id=report_id,
        patient_id=patient_id,
        session_id=session_id,
        recording={"channel_count": 0},
        spectra={},
        connectivity={},
        metrics=make_metrics(**metric_overrides),
        indices=SpectralIndices(),
        patterns=PatternAnalysis(anomalies=(), progress="baseline"),
        recommendations=(),
        quality_score=100.0,
        artifact_fraction=0.0,
        **kwargs,
    )


@pytest.fixture
def synthetic_source():
    return SyntheticEEG(fs=256.0, seed=42)


@pytest.fixture
def synthetic_bytes(synthetic_source):
    """8 s, 19 channel, 256 Hz recording"""
    return synthetic_source.recording_bytes(8)


@pytest.fixture
def small_bytes():
    """4 channels, 4 records of 1 s at 128 Hz"""
    source = SyntheticEEG(fs=128.0, labels=["Fp1", "F3", "P3", "O1"], seed=7)
    return source.recording_bytes(4)


@pytest.fixture
def corrupt_bytes(synthetic_source):
    data = synthetic_source.generate(4)
    return encode_recording(data, STANDARD_MONTAGE, 256.0, version="9")


@pytest.fixture
def store():
    return InMemoryReportStore()


@pytest.fixture
def orchestrator(store):
    return AnalysisOrchestrator(store=store, config=AnalysisConfig(connectivity_n_jobs=1))


@pytest.fixture
def write_file(tmp_path):
    def _write(name, data):
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)
    return _write
