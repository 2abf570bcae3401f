"""
EEG signal preprocessing pipeline

This module handles filtering, baseline correction and artifact rejection of
raw EEG channels. Every stage returns a series of the same length as its
input.
"""

import logging
from typing import Tuple

import numpy as np
from scipy import signal as sp_signal

from ..core.data_types import PreprocessedRecording, Recording
from ..core.exceptions import PreprocessingError
from ..core.config import (
    NOTCH_HZ, NOTCH_Q, BANDPASS, BANDPASS_ORDER, ARTIFACT_STD_THRESH,
)


def _padlen(default: int, n_samples: int) -> int:
    """filtfilt padding that still works on very short channels"""
    return max(0, min(default, n_samples - 1))


class Preprocessor:
    """
    EEG signal preprocessing pipeline

    Applies, per channel and in this order: band-pass, notch at the line
    frequency, baseline correction and artifact rejection.
    """

    def __init__(self, fs: float, notch_freq: float = NOTCH_HZ,
                 bandpass: Tuple[float, float] = BANDPASS,
                 artifact_std_thresh: float = ARTIFACT_STD_THRESH):
        if fs <= 0:
            raise PreprocessingError(f"Sampling rate must be positive, got {fs}")
        self.fs = fs
        self.notch_freq = notch_freq
        self.bandpass = bandpass
        self.artifact_std_thresh = artifact_std_thresh

        # Design filters
        self._design_filters()

    def _design_filters(self):
        """Design digital filters for preprocessing"""
        nyquist = self.fs / 2
        low, high = self.bandpass

        if high >= nyquist:
            high = 0.99 * nyquist
            logging.warning(f"Band-pass upper edge {self.bandpass[1]}Hz >= Nyquist, using {high:.2f}Hz")
        if low >= high:
            logging.warning(f"Band-pass {self.bandpass}Hz not realizable at {self.fs}Hz, skipping")
            self.bp_sos = None
        else:
            self.bp_sos = sp_signal.butter(BANDPASS_ORDER, [low, high], btype='band',
                                           fs=self.fs, output='sos')

        # Notch filter for power line interference
        if self.notch_freq >= nyquist:
            logging.warning(f"Notch {self.notch_freq}Hz >= Nyquist at {self.fs}Hz, skipping")
            self.notch_b, self.notch_a = None, None
        else:
            self.notch_b, self.notch_a = sp_signal.iirnotch(self.notch_freq, NOTCH_Q, fs=self.fs)

        logging.debug(f"Filters designed: Notch {self.notch_freq}Hz, BP ({low}, {high})Hz")

    def bandpass_filter(self, data: np.ndarray) -> np.ndarray:
        """Zero-phase Butterworth band-pass"""
        if self.bp_sos is None:
            return data.copy()
        default = 3 * (2 * len(self.bp_sos) + 1)
        return sp_signal.sosfiltfilt(self.bp_sos, data, padlen=_padlen(default, len(data)))

    def notch_filter(self, data: np.ndarray) -> np.ndarray:
        """Zero-phase notch at the line frequency"""
        if self.notch_b is None:
            return data.copy()
        default = 3 * max(len(self.notch_a), len(self.notch_b))
        return sp_signal.filtfilt(self.notch_b, self.notch_a, data,
                                  padlen=_padlen(default, len(data)))

    @staticmethod
    def baseline_correct(data: np.ndarray) -> np.ndarray:
        """Subtract the channel mean"""
        return data - np.mean(data)

    def reject_artifacts(self, data: np.ndarray) -> Tuple[np.ndarray, int]:
        """
        Zero every sample whose magnitude exceeds the std threshold

        A zero-variance channel has a zero threshold, so every non-zero
        sample in it is rejected.

        Returns:
            Tuple[cleaned, n_rejected]
        """
        threshold = self.artifact_std_thresh * np.std(data)
        mask = np.abs(data) > threshold
        cleaned = np.where(mask, 0.0, data)
        return cleaned, int(np.count_nonzero(mask))

    def process_channel(self, data: np.ndarray) -> Tuple[np.ndarray, np.ndarray, float]:
        """
        Run all stages on one channel

        Args:
            data: Raw samples for a single channel (samples,)

        Returns:
            Tuple[baseline, cleaned, rejected_fraction]
        """
        x = np.asarray(data, dtype=np.float64)
        n = len(x)

        filtered = self.bandpass_filter(x)
        filtered = self.notch_filter(filtered)
        baseline = self.baseline_correct(filtered)
        cleaned, n_rejected = self.reject_artifacts(baseline)

        if not (len(filtered) == len(baseline) == len(cleaned) == n):
            raise PreprocessingError(f"Stage changed series length from {n}")
        return baseline, cleaned, n_rejected / n

    def process(self, recording: Recording) -> PreprocessedRecording:
        """
        Preprocess every channel of a recording

        Flat (zero-variance) channels are reported as fully artifactual.

        Raises:
            PreprocessingError: On an empty channel or a filter failure
        """
        n_ch, n_samples = recording.samples.shape
        baseline = np.empty((n_ch, n_samples), dtype=np.float64)
        cleaned = np.empty((n_ch, n_samples), dtype=np.float64)
        artifact_fraction = {}
        flat_channels = []

        for ch, label in enumerate(recording.labels):
            raw = recording.samples[ch]
            if raw.size == 0:
                raise PreprocessingError(f"Channel {label} has no samples")
            try:
                baseline[ch], cleaned[ch], fraction = self.process_channel(raw)
            except ValueError as e:
                raise PreprocessingError(f"Filtering failed on channel {label}: {e}") from e

            if raw.min() == raw.max():
                flat_channels.append(label)
                fraction = 1.0
            artifact_fraction[label] = fraction

        if flat_channels:
            logging.warning(f"Flat channels: {', '.join(flat_channels)}")
        logging.info(
            f"Preprocessed {n_ch} channels, mean rejected fraction "
            f"{np.mean(list(artifact_fraction.values())):.3f}"
        )

        return PreprocessedRecording(
            fs=recording.fs,
            labels=recording.labels,
            cleaned=cleaned,
            baseline=baseline,
            artifact_fraction=artifact_fraction,
            flat_channels=flat_channels,
        )
