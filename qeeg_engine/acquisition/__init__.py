"""
Recording acquisition

This module decodes uploaded recording containers and generates
synthetic recordings for testing.
"""

from .recording_parser import RecordingParser, parse_recording, read_recording
from .synthetic import SyntheticEEG, encode_recording, write_recording, STANDARD_MONTAGE

__all__ = [
    'RecordingParser', 'parse_recording', 'read_recording',
    'SyntheticEEG', 'encode_recording', 'write_recording', 'STANDARD_MONTAGE',
]
