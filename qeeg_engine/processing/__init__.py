"""
EEG signal processing components

This module contains preprocessing, spectral analysis and connectivity
analysis for recorded EEG.
"""

from .preprocessor import Preprocessor
from .spectral import SpectralAnalyzer
from .connectivity import ConnectivityAnalyzer, pair_connectivity

__all__ = ['Preprocessor', 'SpectralAnalyzer', 'ConnectivityAnalyzer', 'pair_connectivity']
