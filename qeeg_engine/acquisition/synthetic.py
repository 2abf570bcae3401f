"""
Synthetic recordings

Generates EEG-like multichannel data and encodes it into the recording
container format. Used for testing the pipeline and for the CLI's
--generate mode when no real upload is at hand.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from ..core.config import HEADER_FIXED_BYTES, CHANNEL_LABEL_BYTES, VERSION_MARKER

# Standard 10-20 montage, 19 channels
STANDARD_MONTAGE = [
    "Fp1", "Fp2", "F7", "F3", "Fz", "F4", "F8",
    "T3", "C3", "Cz", "C4", "T4",
    "T5", "P3", "Pz", "P4", "T6",
    "O1", "O2",
]


def _ascii_field(value, width: int) -> bytes:
    text = str(value)
    if len(text) > width:
        raise ValueError(f"Header value {text!r} does not fit in {width} bytes")
    return text.ljust(width).encode("ascii")


def encode_recording(samples: np.ndarray, labels: Sequence[str], fs: float,
                     record_duration: float = 1.0, version: str = VERSION_MARKER,
                     patient_tag: str = "X X X X", recording_tag: str = "Startdate X",
                     start_date: str = "01.01.26", start_time: str = "00.00.00",
                     channel_count: Optional[int] = None,
                     data_record_count: Optional[int] = None) -> bytes:
    """
    Encode a (channels x samples) matrix into container bytes

    Samples are truncated to whole data records and clipped to int16.
    channel_count/data_record_count override the declared header values,
    which lets tests write deliberately inconsistent headers.

    Args:
        samples: Signal matrix (channels x samples)
        labels: One label per channel
        fs: Sampling frequency (Hz)
        record_duration: Seconds per data record

    Returns:
        bytes: Complete recording file contents
    """
    samples = np.atleast_2d(np.asarray(samples))
    n_ch = samples.shape[0]
    if len(labels) != n_ch:
        raise ValueError(f"Got {len(labels)} labels for {n_ch} channels")

    spr = int(round(fs * record_duration))
    n_rec = samples.shape[1] // spr if spr > 0 else 0
    header_bytes = HEADER_FIXED_BYTES + n_ch * CHANNEL_LABEL_BYTES

    header = b"".join([
        _ascii_field(version, 8),
        _ascii_field(patient_tag, 80),
        _ascii_field(recording_tag, 80),
        _ascii_field(start_date, 8),
        _ascii_field(start_time, 8),
        _ascii_field(header_bytes, 8),
        _ascii_field("", 44),
        _ascii_field(n_rec if data_record_count is None else data_record_count, 8),
        _ascii_field(f"{record_duration:g}", 8),
        _ascii_field(n_ch if channel_count is None else channel_count, 4),
    ])
    label_table = b"".join(_ascii_field(label, CHANNEL_LABEL_BYTES) for label in labels)

    clipped = np.clip(np.round(samples[:, :n_rec * spr]), -32768, 32767).astype("<i2")
    # (channels, records, spr) -> record-major, channel-minor
    payload = clipped.reshape(n_ch, n_rec, spr).transpose(1, 0, 2).tobytes()

    return header + label_table + payload


class SyntheticEEG:
    """
    Generate synthetic EEG with controllable rhythms

    Background noise plus an alpha rhythm over parietal/occipital sites and
    a beta rhythm over frontal sites, so the derived scores land in a
    realistic range.
    """

    def __init__(self, fs: float = 256.0, labels: Sequence[str] = STANDARD_MONTAGE,
                 seed: Optional[int] = None):
        self.fs = fs
        self.labels = list(labels)
        self.rng = np.random.default_rng(seed)

    def generate(self, duration_sec: float, noise_uv: float = 10.0,
                 alpha_uv: float = 20.0, beta_uv: float = 8.0) -> np.ndarray:
        """
        Generate a signal matrix

        Args:
            duration_sec: Duration of data to generate
            noise_uv: Background noise amplitude
            alpha_uv: 10 Hz amplitude on P/O channels
            beta_uv: 20 Hz amplitude on frontal channels

        Returns:
            np.ndarray: Synthetic EEG data (channels x samples)
        """
        n_samples = int(duration_sec * self.fs)
        t = np.arange(n_samples) / self.fs
        data = self.rng.standard_normal((len(self.labels), n_samples)) * noise_uv

        for ch, label in enumerate(self.labels):
            name = label.upper()
            phase = self.rng.random() * 2 * np.pi
            if name.startswith(("P", "O")):
                data[ch, :] += alpha_uv * np.sin(2 * np.pi * 10 * t + phase)
            elif name.startswith("F"):
                data[ch, :] += beta_uv * np.sin(2 * np.pi * 20 * t + phase)
        return data

    def recording_bytes(self, duration_sec: float, record_duration: float = 1.0,
                        **kwargs) -> bytes:
        """Generate a signal and encode it as a recording container"""
        data = self.generate(duration_sec, **kwargs)
        return encode_recording(data, self.labels, self.fs, record_duration)


def write_recording(path: Union[str, Path], data: bytes) -> Path:
    """Write encoded recording bytes to disk"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logging.info(f"Wrote recording: {path} ({len(data)} bytes)")
    return path
