"""
Inter-channel connectivity

Coherence, phase difference and linear correlation for every unordered
channel pair. Each pair is an independent pure computation, mapped over a
joblib worker pool.
"""

import logging
from itertools import combinations
from typing import Dict, Tuple

import numpy as np
from joblib import Parallel, delayed
from scipy import signal as sp_signal

from ..core.data_types import ConnectivityEdge, PreprocessedRecording
from ..core.exceptions import AnalysisError
from ..core.config import COHERENCE_NPERSEG, COHERENCE_RANGE, CONNECTIVITY_N_JOBS


def pair_connectivity(x: np.ndarray, y: np.ndarray, fs: float,
                      nperseg: int = COHERENCE_NPERSEG,
                      freq_range: Tuple[float, float] = COHERENCE_RANGE) -> Tuple[float, float, float]:
    """
    Connectivity measures for one channel pair

    Args:
        x, y: Preprocessed series of equal length
        fs: Sampling frequency
        nperseg: Segment length for the spectral estimates
        freq_range: Frequencies averaged into the coherence value

    Returns:
        Tuple[coherence, phase, correlation]: Undefined values (flat
        channels) are reported as 0
    """
    n = min(len(x), len(y))
    if n < 2:
        return 0.0, 0.0, 0.0
    x, y = x[:n], y[:n]
    nperseg = min(nperseg, n)

    with np.errstate(divide='ignore', invalid='ignore'):
        freqs, cxy = sp_signal.coherence(x, y, fs=fs, nperseg=nperseg)
        _, pxy = sp_signal.csd(x, y, fs=fs, nperseg=nperseg)

    mask = (freqs >= freq_range[0]) & (freqs <= freq_range[1])
    if not np.any(mask):
        mask = freqs > 0

    band = cxy[mask]
    band = band[np.isfinite(band)]
    coherence = float(np.clip(np.mean(band), 0.0, 1.0)) if band.size else 0.0

    cross = np.sum(pxy[mask])
    phase = float(np.angle(cross)) if np.abs(cross) > 0 else 0.0

    if np.std(x) == 0 or np.std(y) == 0:
        correlation = 0.0
    else:
        correlation = float(np.clip(np.corrcoef(x, y)[0, 1], -1.0, 1.0))

    return coherence, phase, correlation


class ConnectivityAnalyzer:
    """
    Pairwise connectivity over all channels

    Results do not depend on n_jobs: pairs are evaluated independently and
    collected in pair order.
    """

    def __init__(self, fs: float, n_jobs: int = CONNECTIVITY_N_JOBS,
                 nperseg: int = COHERENCE_NPERSEG,
                 freq_range: Tuple[float, float] = COHERENCE_RANGE):
        self.fs = fs
        self.n_jobs = n_jobs
        self.nperseg = nperseg
        self.freq_range = freq_range

    def analyze(self, preprocessed: PreprocessedRecording) -> Dict[str, ConnectivityEdge]:
        """
        Compute an edge for every unordered channel pair

        Returns:
            Dict mapping "A-B" (input channel order) to ConnectivityEdge

        Raises:
            AnalysisError: If any pair computation fails
        """
        labels = preprocessed.labels
        pairs = list(combinations(range(len(labels)), 2))
        if not pairs:
            return {}

        data = preprocessed.cleaned
        try:
            results = Parallel(n_jobs=self.n_jobs, prefer="threads")(
                delayed(pair_connectivity)(data[i], data[j], self.fs,
                                           self.nperseg, self.freq_range)
                for i, j in pairs
            )
        except (ValueError, FloatingPointError) as e:
            raise AnalysisError(f"Connectivity analysis failed: {e}") from e

        edges = {}
        for (i, j), (coh, phase, corr) in zip(pairs, results):
            edge = ConnectivityEdge(labels[i], labels[j], coh, phase, corr)
            edges[edge.key] = edge

        logging.info(f"Connectivity computed for {len(edges)} channel pairs")
        return edges
