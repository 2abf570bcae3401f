"""
Configuration constants for qEEG Engine

This module contains the processing parameters of the analysis pipeline and
the job service. The constants are the defaults; AnalysisConfig carries the
values that callers (or the CLI) may override for a single run.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

# ============================================================================
# RECORDING CONTAINER LAYOUT
# ============================================================================

HEADER_FIXED_BYTES = 256          # Fixed header span before the label table
CHANNEL_LABEL_BYTES = 16          # One label entry per channel
SAMPLE_BYTES = 2                  # Little-endian signed 16-bit samples

# (name, offset, width, type) - offsets must not change
HEADER_LAYOUT: List[Tuple[str, int, int, type]] = [
    ("version", 0, 8, str),
    ("patient_tag", 8, 80, str),
    ("recording_tag", 88, 80, str),
    ("start_date", 168, 8, str),
    ("start_time", 176, 8, str),
    ("header_bytes", 184, 8, int),
    ("reserved", 192, 44, str),
    ("data_record_count", 236, 8, int),
    ("record_duration", 244, 8, float),
    ("channel_count", 252, 4, int),
]

VERSION_MARKER = "0"              # Only recognized version field value

# ============================================================================
# PREPROCESSING
# ============================================================================

BANDPASS = (0.5, 50.0)            # Band-pass filter range (Hz)
BANDPASS_ORDER = 4                # Butterworth order
NOTCH_HZ = 50.0                   # Power line frequency (60 Hz for US recordings)
NOTCH_Q = 30.0                    # Notch quality factor
ARTIFACT_STD_THRESH = 3.0         # Samples beyond this many std devs are zeroed

# ============================================================================
# SPECTRAL ANALYSIS
# ============================================================================

PSD_WINDOW_MAX = 1024             # Single periodogram window, no averaging
SPECTRAL_EDGE_FRACTION = 0.95     # Cumulative power fraction for the spectral edge
DOMINANT_RANGE = (0.5, 100.0)     # Search range for the dominant frequency

# Frequency Bands (Hz), half-open [low, high)
FREQ_BANDS: Dict[str, Tuple[float, float]] = {
    "delta": (0.5, 4.0),
    "theta": (4.0, 8.0),
    "alpha": (8.0, 13.0),
    "beta": (13.0, 30.0),
    "gamma": (30.0, 100.0),
}

# ============================================================================
# CONNECTIVITY
# ============================================================================

COHERENCE_NPERSEG = 256           # Segment length for coherence/CSD estimates
COHERENCE_RANGE = (0.5, 50.0)     # Frequencies averaged into the coherence score
CONNECTIVITY_N_JOBS = -1          # joblib workers for the pair map (-1 = all cores)

# ============================================================================
# METRICS
# ============================================================================

# Electrode Groups for the cognitive scores
ELECTRODE_GROUPS: Dict[str, List[str]] = {
    "frontal": ["Fp1", "Fp2", "F3", "F4", "Fz"],
    "parieto_occipital": ["P3", "P4", "Pz", "O1", "O2"],
    "occipital": ["O1", "O2"],
    "central": ["C3", "C4", "Cz"],
}

NEUTRAL_SCORE = 50.0              # Used when a score has no channels to work from
SCORE_RANGE = (0.0, 100.0)

# ============================================================================
# PATTERN RECOGNITION
# ============================================================================

ANOMALY_STD_THRESH = 3.0          # Deviation (robust std units) counted as anomalous
ANOMALY_MODERATE_FRACTION = 0.05  # > 5 % anomalous samples
ANOMALY_SEVERE_FRACTION = 0.10    # > 10 % anomalous samples
HISTORY_LIMIT = 10                # Prior reports used for the trend
TREND_MARGIN = 5.0                # Composite score change that counts as a trend
QUALITY_ANOMALY_PENALTY = 5.0     # Quality points lost per anomaly finding

ALGORITHM_VERSION = "2.1.0"

# ============================================================================
# JOBS
# ============================================================================

POLL_INTERVAL_SEC = 5.0           # Client status poll spacing
POLL_MAX_ATTEMPTS = 60            # 5 minute client ceiling
ESTIMATED_DURATION_SEC = 300      # Reported completion estimate
JOB_WORKERS = 2                   # Background worker threads
JOB_TTL_SEC: Optional[float] = None  # Server-side processing ceiling (None = off)

REPORT_DIR = "reports"            # Default directory for the JSON report store


@dataclass
class AnalysisConfig:
    """
    Parameters for one analysis run

    Defaults come from the module constants above. Only values that are
    reasonable to change per deployment live here; the recording layout and
    band table are fixed.
    """

    bandpass: Tuple[float, float] = BANDPASS
    notch_hz: float = NOTCH_HZ
    artifact_std_thresh: float = ARTIFACT_STD_THRESH
    psd_window_max: int = PSD_WINDOW_MAX
    connectivity_n_jobs: int = CONNECTIVITY_N_JOBS
    sampling_rate: Optional[float] = None   # Overrides the rate derived from the payload
    history_limit: int = HISTORY_LIMIT
    electrode_groups: Dict[str, List[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in ELECTRODE_GROUPS.items()}
    )

    def __post_init__(self):
        low, high = self.bandpass
        if not 0 < low < high:
            raise ValueError(f"Invalid bandpass range: {self.bandpass}")
        if self.notch_hz <= 0:
            raise ValueError(f"Invalid notch frequency: {self.notch_hz}")
        if self.sampling_rate is not None and not (
                math.isfinite(self.sampling_rate) and self.sampling_rate > 0):
            raise ValueError(f"Invalid sampling rate: {self.sampling_rate}")
        if self.psd_window_max < 2:
            raise ValueError("psd_window_max must be at least 2")
