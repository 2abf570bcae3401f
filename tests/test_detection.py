"""
Tests for metric derivation, anomaly detection, trends and recommendations
"""

import numpy as np
import pytest

from qeeg_engine.core.config import NEUTRAL_SCORE
from qeeg_engine.core.data_types import (
    ConnectivityEdge, PreprocessedRecording, Severity, SpectralIndices,
)
from qeeg_engine.detection.history import (
    BASELINE, IMPROVING, STABLE, WORSENING, RecentWindowTrend, composite_score,
)
from qeeg_engine.detection.metrics import MetricsDeriver, clamp_score, safe_ratio
from qeeg_engine.detection.patterns import PatternRecognizer, RecommendationEngine

from .conftest import make_metrics, make_report, make_spectrum


# ----------------------------------------------------------------------------
# Metrics
# ----------------------------------------------------------------------------

def test_attention_uses_present_frontal_channels_only():
    spectra = {
        "Fp1": make_spectrum("Fp1", {"beta": 10.0, "theta": 10.0}),   # 20
        "F3": make_spectrum("F3", {"beta": 30.0, "theta": 10.0}),     # 60
        "O1": make_spectrum("O1", {"beta": 90.0, "theta": 1.0}),      # not frontal
    }
    assert MetricsDeriver().attention_score(spectra) == pytest.approx(40.0)


def test_attention_neutral_without_frontal_channels():
    spectra = {"O1": make_spectrum("O1", {"beta": 10.0, "theta": 5.0})}
    assert MetricsDeriver().attention_score(spectra) == NEUTRAL_SCORE


def test_attention_ratio_capped():
    spectra = {"Fz": make_spectrum("Fz", {"beta": 80.0, "theta": 1.0})}
    assert MetricsDeriver().attention_score(spectra) == 100.0


def test_zero_theta_counts_as_one():
    spectra = {"Fz": make_spectrum("Fz", {"beta": 2.0, "theta": 0.0})}
    assert MetricsDeriver().attention_score(spectra) == pytest.approx(40.0)


def test_labels_matched_after_normalization():
    spectra = {"EEG FP1": make_spectrum("EEG FP1", {"beta": 10.0, "theta": 10.0})}
    assert MetricsDeriver().attention_score(spectra) == pytest.approx(20.0)


def test_scores_clamped():
    spectra = {
        "P3": make_spectrum("P3", {"alpha": 60.0}),
        "O1": make_spectrum("O1", {"alpha": 60.0}),
    }
    deriver = MetricsDeriver()
    assert deriver.relaxation_score(spectra) == 100.0
    assert deriver.alpha_activity(spectra) == 100.0


def test_derive_all_scores_in_range():
    spectra = {
        label: make_spectrum(label, {"delta": 20.0, "theta": 20.0, "alpha": 30.0,
                                     "beta": 25.0, "gamma": 5.0})
        for label in ["Fp1", "F3", "F4", "C3", "Cz", "P3", "O1", "O2"]
    }
    edges = {"Fp1-F3": ConnectivityEdge("Fp1", "F3", 0.4, 0.1, 0.2)}
    metrics = MetricsDeriver().derive(spectra, edges)

    assert metrics.attention == pytest.approx(25.0)
    assert metrics.relaxation == pytest.approx(90.0)
    assert metrics.working_memory == pytest.approx(50.0)
    assert metrics.processing_speed == pytest.approx(40.0)
    assert metrics.executive_function == pytest.approx(25 / 45 * 100)
    assert metrics.sleep_quality == pytest.approx(82.5)
    assert metrics.stress_level == pytest.approx(25.0)
    assert metrics.alpha_activity == pytest.approx(60.0)
    assert metrics.delta_activity == pytest.approx(20.0)
    for value in metrics.to_dict().values():
        assert 0.0 <= value <= 100.0


def test_empty_inputs_defaults():
    metrics = MetricsDeriver().derive({}, {})
    assert metrics.attention == NEUTRAL_SCORE
    assert metrics.processing_speed == NEUTRAL_SCORE
    assert metrics.relaxation == 0.0
    assert metrics.working_memory == 0.0
    assert metrics.stress_level == 0.0


def test_custom_electrode_groups():
    deriver = MetricsDeriver({"frontal": ["Cz"]})
    spectra = {"Cz": make_spectrum("Cz", {"beta": 20.0, "theta": 10.0})}
    assert deriver.attention_score(spectra) == pytest.approx(40.0)


def test_relaxation_uses_parieto_occipital_group():
    spectra = {
        "P3": make_spectrum("P3", {"alpha": 20.0}),
        "O1": make_spectrum("O1", {"alpha": 10.0}),
        "F3": make_spectrum("F3", {"alpha": 90.0}),   # not parieto-occipital
    }
    assert MetricsDeriver().relaxation_score(spectra) == pytest.approx(45.0)
    deriver = MetricsDeriver({"parieto_occipital": ["F3"]})
    assert deriver.relaxation_score(spectra) == 100.0


def test_frontal_alpha_asymmetry():
    spectra = {
        "F3": make_spectrum("F3", absolute={"alpha": 1.0}),
        "F4": make_spectrum("F4", absolute={"alpha": 3.0}),
    }
    indices = MetricsDeriver().indices(spectra)
    assert indices.frontal_alpha_asymmetry == pytest.approx(0.5)


def test_helpers():
    assert clamp_score(-5) == 0.0
    assert clamp_score(150) == 100.0
    assert safe_ratio(3.0, 0.0) == 3.0


# ----------------------------------------------------------------------------
# Anomaly detection
# ----------------------------------------------------------------------------

def with_spikes(fraction, n=10000, seed=0):
    x = np.random.default_rng(seed).standard_normal(n)
    count = int(round(fraction * n))
    idx = np.linspace(0, n - 1, count).astype(int) if count else np.array([], dtype=int)
    x[idx] = np.where(np.arange(count) % 2 == 0, 50.0, -50.0)
    return x


def recording_of(rows, labels):
    rows = np.asarray(rows, dtype=np.float64)
    return PreprocessedRecording(fs=256.0, labels=tuple(labels), cleaned=rows,
                                 baseline=rows, artifact_fraction={label: 0.0 for label in labels})


def test_severity_monotonic_in_artifact_fraction():
    recognizer = PatternRecognizer()
    fractions = [0.0, 0.02, 0.04, 0.07, 0.09, 0.15, 0.3, 0.45]
    ranks = [recognizer.classify(recognizer.anomaly_fraction(with_spikes(f))).rank
             for f in fractions]
    assert ranks == sorted(ranks)
    assert ranks[0] == Severity.NONE.rank
    assert ranks[-1] == Severity.SEVERE.rank


def test_severity_tiers():
    recognizer = PatternRecognizer()
    findings = recognizer.detect_anomalies(recording_of(
        [with_spikes(0.0), with_spikes(0.07), with_spikes(0.15)], ["Cz", "Pz", "Oz"]))

    assert [f.region for f in findings] == ["Pz", "Oz"]
    assert findings[0].severity is Severity.MODERATE
    assert findings[1].severity is Severity.SEVERE
    assert all(f.description == "High artifact content" and f.abnormal for f in findings)


def test_classify_boundaries():
    recognizer = PatternRecognizer()
    assert recognizer.classify(0.05) is Severity.NONE
    assert recognizer.classify(0.051) is Severity.MODERATE
    assert recognizer.classify(0.10) is Severity.MODERATE
    assert recognizer.classify(0.101) is Severity.SEVERE


def test_flat_channel_has_no_anomalies():
    assert PatternRecognizer().anomaly_fraction(np.zeros(500)) == 0.0


# ----------------------------------------------------------------------------
# History trends
# ----------------------------------------------------------------------------

def snapshots(*composites):
    return [make_report(f"r{i}", attention=c, relaxation=c, working_memory=c).to_dict()
            for i, c in enumerate(composites)]


@pytest.mark.parametrize("prior,current,expected", [
    ((), 50.0, BASELINE),
    ((50.0, 50.0), 60.0, IMPROVING),
    ((50.0, 50.0), 52.0, STABLE),
    ((50.0, 50.0), 40.0, WORSENING),
])
def test_recent_window_trend(prior, current, expected):
    metrics = make_metrics(attention=current, relaxation=current, working_memory=current)
    assert RecentWindowTrend().compare(metrics, snapshots(*prior)) == expected


def test_trend_window_limit():
    # Only the newest two count: mean 70 vs current 72 is stable
    history = snapshots(70.0, 70.0, 10.0, 10.0)
    metrics = make_metrics(attention=72.0, relaxation=72.0, working_memory=72.0)
    assert RecentWindowTrend(limit=2).compare(metrics, history) == STABLE


def test_composite_score():
    assert composite_score({"attention": 30, "relaxation": 60, "working_memory": 90}) == 60.0


# ----------------------------------------------------------------------------
# Recommendations
# ----------------------------------------------------------------------------

def test_all_matching_rules_emitted_in_order():
    metrics = make_metrics(attention=10.0, relaxation=10.0, sleep_quality=10.0,
                           working_memory=10.0, stress_level=90.0)
    recs = RecommendationEngine().evaluate(metrics, SpectralIndices(frontal_alpha_asymmetry=0.5))
    assert [r.category for r in recs] == [
        "Attention Training", "Relaxation Training", "Sleep Enhancement",
        "Cognitive Enhancement", "Stress Management", "Hemispheric Balance",
    ]


def test_rules_are_independent():
    recs = RecommendationEngine().evaluate(make_metrics(relaxation=10.0))
    assert [r.category for r in recs] == ["Relaxation Training"]


def test_no_rules_match():
    assert RecommendationEngine().evaluate(make_metrics()) == ()


def test_neurofeedback_targets():
    metrics = make_metrics(attention=10.0)
    targets = PatternRecognizer.neurofeedback_targets(metrics, SpectralIndices(beta_theta_ratio=2.0))
    assert targets == ("Beta training",)
