"""
EEG spectral analysis

This module estimates a power spectral density per channel with a single
bounded periodogram window and derives band powers and frequency metrics.
"""

import logging
from typing import Dict, Tuple

import numpy as np
from scipy import signal as sp_signal

from ..core.data_types import ChannelSpectrum, PreprocessedRecording
from ..core.exceptions import AnalysisError
from ..core.config import (
    FREQ_BANDS, PSD_WINDOW_MAX, SPECTRAL_EDGE_FRACTION, DOMINANT_RANGE,
)


class SpectralAnalyzer:
    """
    Per-channel band power extraction

    Long channels are not averaged across overlapping segments. A stride
    path through the whole series (sample floor(j * n / W) for each window
    position j) fills one window of at most window_max samples, and that
    window is treated as sampled at the recording rate.
    """

    def __init__(self, fs: float, freq_bands: Dict[str, Tuple[float, float]] = FREQ_BANDS,
                 window_max: int = PSD_WINDOW_MAX):
        self.fs = fs
        self.freq_bands = freq_bands
        self.window_max = window_max

    def select_window(self, data: np.ndarray) -> np.ndarray:
        """Pick the samples that make up the analysis window"""
        n = len(data)
        if n <= self.window_max:
            return data
        idx = (np.arange(self.window_max) * n) // self.window_max
        return data[idx]

    def compute_psd(self, data: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute power spectral density with a single Hann periodogram

        Args:
            data: EEG data for single channel (samples,)

        Returns:
            Tuple[frequencies, power]: Frequency bins and power values
        """
        window = self.select_window(np.asarray(data, dtype=np.float64))
        if len(window) < 2:
            return np.zeros(1), np.zeros(1)
        freqs, psd = sp_signal.periodogram(window, fs=self.fs, window='hann',
                                           scaling='density')
        return freqs, psd

    @staticmethod
    def band_power(freqs: np.ndarray, psd: np.ndarray, freq_range: Tuple[float, float]) -> float:
        """
        Integrate the PSD over [low, high)

        Returns:
            float: Absolute band power (uV^2)
        """
        if len(freqs) < 2:
            return 0.0
        df = freqs[1] - freqs[0]
        mask = (freqs >= freq_range[0]) & (freqs < freq_range[1])
        return float(np.sum(psd[mask]) * df)

    @staticmethod
    def _peak(freqs: np.ndarray, psd: np.ndarray, freq_range: Tuple[float, float]) -> float:
        mask = (freqs >= freq_range[0]) & (freqs <= freq_range[1])
        if not np.any(mask) or np.sum(psd[mask]) <= 0:
            return 0.0
        return float(freqs[mask][np.argmax(psd[mask])])

    def spectral_edge(self, freqs: np.ndarray, psd: np.ndarray,
                      fraction: float = SPECTRAL_EDGE_FRACTION) -> float:
        """Frequency below which `fraction` of the (non-DC) power lies"""
        freqs, psd = freqs[1:], psd[1:]
        total = np.sum(psd)
        if total <= 0:
            return 0.0
        idx = int(np.searchsorted(np.cumsum(psd), fraction * total))
        return float(freqs[min(idx, len(freqs) - 1)])

    def analyze_channel(self, label: str, data: np.ndarray) -> ChannelSpectrum:
        """
        Extract all spectral features for one channel

        Relative powers are percentages of the channel's total over all
        bands, and all zero when the channel has no power.
        """
        freqs, psd = self.compute_psd(data)

        absolute = {band: self.band_power(freqs, psd, rng)
                    for band, rng in self.freq_bands.items()}
        total = sum(absolute.values())
        relative = {band: (power / total * 100.0 if total > 0 else 0.0)
                    for band, power in absolute.items()}

        return ChannelSpectrum(
            channel=label,
            absolute_powers=absolute,
            relative_powers=relative,
            dominant_frequency=self._peak(freqs, psd, DOMINANT_RANGE),
            spectral_edge_frequency=self.spectral_edge(freqs, psd),
            peak_alpha_frequency=self._peak(freqs, psd, self.freq_bands["alpha"]),
        )

    def analyze(self, preprocessed: PreprocessedRecording) -> Dict[str, ChannelSpectrum]:
        """
        Analyze every channel of a preprocessed recording

        Raises:
            AnalysisError: If the spectral estimate fails for a channel
        """
        spectra = {}
        for ch, label in enumerate(preprocessed.labels):
            try:
                spectra[label] = self.analyze_channel(label, preprocessed.cleaned[ch])
            except (ValueError, FloatingPointError) as e:
                raise AnalysisError(f"Spectral analysis failed on channel {label}: {e}") from e

        logging.info(f"Spectral analysis done for {len(spectra)} channels")
        return spectra
