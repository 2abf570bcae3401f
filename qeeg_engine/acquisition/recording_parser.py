"""
Binary recording container parser

Decodes the fixed-layout ASCII header, the per-channel label table and the
multiplexed int16 sample payload of an uploaded recording.

Container layout
----------------
  bytes 0..255     fixed header (see HEADER_LAYOUT in core.config)
  bytes 256..      one 16-byte label per channel
  header_bytes..   data records; each record holds, for every channel in
                   order, samples_per_record little-endian int16 values

The header does not declare a sampling rate. samples_per_record is taken
from the size of the payload (header_bytes to end of file) divided by
data_record_count x channel_count, and the sampling rate follows as
samples_per_record / record_duration. Callers that know the rate can pass
it explicitly, in which case the payload must be at least that long.
"""

import logging
import math
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from ..core.config import (
    HEADER_LAYOUT, HEADER_FIXED_BYTES, CHANNEL_LABEL_BYTES, SAMPLE_BYTES,
    VERSION_MARKER,
)
from ..core.data_types import Recording, RecordingHeader
from ..core.exceptions import FormatError


def _read_ascii(data: bytes, offset: int, width: int) -> str:
    """Read a NUL-terminated, space-padded ASCII field"""
    raw = data[offset:offset + width].split(b"\x00", 1)[0]
    return raw.decode("ascii", errors="replace").strip()


def _unique_labels(labels: List[str]) -> List[str]:
    seen = {}
    unique = []
    for i, label in enumerate(labels):
        name = label or f"Ch{i + 1}"
        if name in seen:
            logging.warning(f"Duplicate channel label '{name}' at index {i}")
            name = f"{name}#{i + 1}"
        seen[name] = i
        unique.append(name)
    return unique


class RecordingParser:
    """
    Fixed-layout recording reader

    Every header field is read from its schema entry (offset, width, type)
    and the whole header is validated before any sample is touched, so a
    malformed file fails with FormatError instead of yielding garbage.
    """

    def __init__(self, sampling_rate: Optional[float] = None):
        if sampling_rate is not None and not (math.isfinite(sampling_rate) and sampling_rate > 0):
            raise ValueError(f"sampling_rate must be positive, got {sampling_rate}")
        self.sampling_rate = sampling_rate

    def _read_fields(self, data: bytes) -> dict:
        fields = {}
        for name, offset, width, kind in HEADER_LAYOUT:
            text = _read_ascii(data, offset, width)
            if kind is str:
                fields[name] = text
                continue
            try:
                fields[name] = kind(text)
            except ValueError:
                raise FormatError(
                    f"Header field '{name}' at byte {offset} is not a valid {kind.__name__}: {text!r}"
                ) from None
        return fields

    def _samples_per_record(self, fields: dict, payload_bytes: int) -> int:
        records = fields["data_record_count"]
        channels = fields["channel_count"]
        block = records * channels * SAMPLE_BYTES

        if self.sampling_rate is not None:
            spr = int(round(self.sampling_rate * fields["record_duration"]))
            if spr <= 0:
                raise FormatError(
                    f"Sampling rate {self.sampling_rate} Hz gives no samples per "
                    f"{fields['record_duration']} s record"
                )
            if payload_bytes < spr * block:
                raise FormatError(
                    f"Payload truncated: {payload_bytes} bytes, expected {spr * block}"
                )
            return spr

        spr = payload_bytes // block
        if spr == 0:
            raise FormatError(
                f"Payload of {payload_bytes} bytes cannot hold one sample per channel "
                f"for {records} records"
            )
        leftover = payload_bytes - spr * block
        if leftover:
            logging.warning(f"Ignoring {leftover} trailing bytes after the last data record")
        return spr

    def parse_header(self, data: bytes) -> RecordingHeader:
        """
        Decode and validate the header and label table

        Args:
            data: Complete recording file contents

        Returns:
            RecordingHeader: Header with derived samples_per_record/sampling_rate

        Raises:
            FormatError: If any header invariant is violated
        """
        if len(data) < HEADER_FIXED_BYTES:
            raise FormatError(
                f"Recording too small: {len(data)} bytes (< {HEADER_FIXED_BYTES} header bytes)"
            )

        version = _read_ascii(data, 0, 8)
        if version != VERSION_MARKER:
            raise FormatError(f"Unrecognized version marker: {version!r}")

        fields = self._read_fields(data)
        channels = fields["channel_count"]
        if channels <= 0:
            raise FormatError(f"Channel count must be positive, got {channels}")
        if not (math.isfinite(fields["record_duration"]) and fields["record_duration"] > 0):
            raise FormatError(
                f"Record duration must be a positive finite number, got {fields['record_duration']}"
            )
        if fields["data_record_count"] <= 0:
            raise FormatError(
                f"Data record count must be positive, got {fields['data_record_count']}"
            )

        min_header = HEADER_FIXED_BYTES + channels * CHANNEL_LABEL_BYTES
        header_bytes = fields["header_bytes"]
        if header_bytes < min_header:
            raise FormatError(
                f"Declared header length {header_bytes} is shorter than the "
                f"{min_header} bytes needed for {channels} channel labels"
            )
        if header_bytes > len(data):
            raise FormatError(
                f"Declared header length {header_bytes} exceeds file size {len(data)}"
            )

        labels = _unique_labels([
            _read_ascii(data, HEADER_FIXED_BYTES + i * CHANNEL_LABEL_BYTES, CHANNEL_LABEL_BYTES)
            for i in range(channels)
        ])

        spr = self._samples_per_record(fields, len(data) - header_bytes)
        fs = self.sampling_rate or spr / fields["record_duration"]

        del fields["version"], fields["reserved"]
        return RecordingHeader(
            version=version,
            channel_labels=tuple(labels),
            samples_per_record=spr,
            sampling_rate=float(fs),
            **fields,
        )

    def parse(self, data: bytes) -> Recording:
        """
        Decode a complete recording

        Samples are laid out record by record, channel by channel. The output
        buffer is sized from the header before decoding.

        Args:
            data: Complete recording file contents

        Returns:
            Recording: Header plus (channels x samples) int16 matrix
        """
        header = self.parse_header(data)
        n_ch = header.channel_count
        n_rec = header.data_record_count
        spr = header.samples_per_record

        count = n_rec * n_ch * spr
        raw = np.frombuffer(data, dtype="<i2", count=count, offset=header.header_bytes)
        blocks = raw.reshape(n_rec, n_ch, spr)

        samples = np.empty((n_ch, n_rec * spr), dtype=np.int16)
        for ch in range(n_ch):
            samples[ch, :] = blocks[:, ch, :].reshape(-1)
        samples.setflags(write=False)

        logging.info(
            f"Parsed recording: {n_ch} channels, {n_rec} records x {spr} samples, "
            f"{header.sampling_rate:g} Hz, {header.duration_sec:g} s"
        )
        return Recording(header=header, samples=samples)

    def read(self, path: Union[str, Path]) -> Recording:
        """Read and decode a recording file"""
        path = Path(path)
        logging.debug(f"Reading recording: {path}")
        return self.parse(path.read_bytes())


def parse_recording(data: bytes, sampling_rate: Optional[float] = None) -> Recording:
    """Shortcut for RecordingParser(sampling_rate).parse(data)"""
    return RecordingParser(sampling_rate).parse(data)


def read_recording(path: Union[str, Path], sampling_rate: Optional[float] = None) -> Recording:
    """Shortcut for RecordingParser(sampling_rate).read(path)"""
    return RecordingParser(sampling_rate).read(path)
