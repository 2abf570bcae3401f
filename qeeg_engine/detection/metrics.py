"""
Cognitive metric derivation

This module turns relative band powers and connectivity into bounded
0-100 scores. Every score is a fixed, deterministic combination of band
powers over a named electrode group.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from ..core.data_types import (
    ChannelSpectrum, CognitiveMetrics, ConnectivityEdge, SpectralIndices, normalize_label,
)
from ..core.config import ELECTRODE_GROUPS, NEUTRAL_SCORE, SCORE_RANGE


def clamp_score(value: float) -> float:
    """Clamp to the score range"""
    return float(min(max(value, SCORE_RANGE[0]), SCORE_RANGE[1]))


def safe_ratio(numerator: float, denominator: float) -> float:
    """Ratio where a zero denominator counts as 1"""
    return numerator / (denominator if denominator != 0 else 1.0)


class MetricsDeriver:
    """
    Derive cognitive scores from spectral and connectivity results

    Electrode groups are matched against recording labels by normalized
    name. Channels of a group that are absent from the recording are left
    out of that group's mean; they are never defaulted.
    """

    def __init__(self, electrode_groups: Optional[Dict[str, List[str]]] = None):
        self.electrode_groups = electrode_groups or ELECTRODE_GROUPS

    def select(self, spectra: Dict[str, ChannelSpectrum], group: str) -> List[ChannelSpectrum]:
        """Spectra of the group's electrodes that are present in the recording"""
        lookup = {normalize_label(label): s for label, s in spectra.items()}
        names = [normalize_label(name) for name in self.electrode_groups.get(group, [])]
        return [lookup[name] for name in names if name in lookup]

    @staticmethod
    def _mean_relative(channels: List[ChannelSpectrum], band: str) -> Optional[float]:
        if not channels:
            return None
        return float(np.mean([s.relative_powers[band] for s in channels]))

    def attention_score(self, spectra: Dict[str, ChannelSpectrum]) -> float:
        """Frontal beta/theta ratio x 20, neutral when no frontal channel is present"""
        frontal = self.select(spectra, "frontal")
        if not frontal:
            return NEUTRAL_SCORE
        scores = [
            min(safe_ratio(s.relative_powers["beta"], s.relative_powers["theta"]) * 20, 100.0)
            for s in frontal
        ]
        return clamp_score(np.mean(scores))

    def relaxation_score(self, spectra: Dict[str, ChannelSpectrum]) -> float:
        """Parietal/occipital relative alpha x 3"""
        alpha = self._mean_relative(self.select(spectra, "parieto_occipital"), "alpha")
        return clamp_score((alpha or 0.0) * 3)

    def working_memory_score(self, spectra: Dict[str, ChannelSpectrum]) -> float:
        """Frontal relative theta x 2.5"""
        theta = self._mean_relative(self.select(spectra, "frontal"), "theta")
        return clamp_score((theta or 0.0) * 2.5)

    def processing_speed_score(self, connectivity: Dict[str, ConnectivityEdge]) -> float:
        """Mean pairwise coherence x 100"""
        if not connectivity:
            return NEUTRAL_SCORE
        return clamp_score(np.mean([e.coherence for e in connectivity.values()]) * 100)

    def executive_function_score(self, spectra: Dict[str, ChannelSpectrum]) -> float:
        """Frontal beta share of beta + theta, as a percentage"""
        shares = []
        for s in self.select(spectra, "frontal"):
            beta, theta = s.relative_powers["beta"], s.relative_powers["theta"]
            if beta + theta > 0:
                shares.append(beta / (beta + theta) * 100)
        if not shares:
            return NEUTRAL_SCORE
        return clamp_score(np.mean(shares))

    def sleep_quality_score(self, spectra: Dict[str, ChannelSpectrum]) -> float:
        """Central alpha + beta (SMR range) x 1.5"""
        central = self.select(spectra, "central")
        if not central:
            return NEUTRAL_SCORE
        values = [s.relative_powers["alpha"] + s.relative_powers["beta"] for s in central]
        return clamp_score(np.mean(values) * 1.5)

    @staticmethod
    def stress_level(spectra: Dict[str, ChannelSpectrum]) -> float:
        """(beta + gamma) / alpha x 25 over all channels"""
        values = [
            safe_ratio(s.relative_powers["beta"] + s.relative_powers["gamma"],
                       s.relative_powers["alpha"]) * 25
            for s in spectra.values()
        ]
        return clamp_score(np.mean(values)) if values else 0.0

    def alpha_activity(self, spectra: Dict[str, ChannelSpectrum]) -> float:
        """Occipital relative alpha x 2"""
        alpha = self._mean_relative(self.select(spectra, "occipital"), "alpha")
        return clamp_score((alpha or 0.0) * 2)

    @staticmethod
    def delta_activity(spectra: Dict[str, ChannelSpectrum]) -> float:
        """Mean relative delta over all channels"""
        values = [s.relative_powers["delta"] for s in spectra.values()]
        return clamp_score(np.mean(values)) if values else 0.0

    def derive(self, spectra: Dict[str, ChannelSpectrum],
               connectivity: Dict[str, ConnectivityEdge]) -> CognitiveMetrics:
        """
        Compute all cognitive scores

        Args:
            spectra: Per-channel spectral results
            connectivity: Pairwise connectivity edges

        Returns:
            CognitiveMetrics: Scores clamped to [0, 100]
        """
        metrics = CognitiveMetrics(
            attention=self.attention_score(spectra),
            relaxation=self.relaxation_score(spectra),
            working_memory=self.working_memory_score(spectra),
            processing_speed=self.processing_speed_score(connectivity),
            executive_function=self.executive_function_score(spectra),
            sleep_quality=self.sleep_quality_score(spectra),
            stress_level=self.stress_level(spectra),
            alpha_activity=self.alpha_activity(spectra),
            delta_activity=self.delta_activity(spectra),
        )
        logging.debug(f"Cognitive metrics: {metrics.to_dict()}")
        return metrics

    def indices(self, spectra: Dict[str, ChannelSpectrum]) -> SpectralIndices:
        """Unbounded ratios: beta/theta, focus, fatigue and frontal alpha asymmetry"""
        frontal = self.select(spectra, "frontal")
        beta_theta = float(np.mean([
            safe_ratio(s.relative_powers["beta"], s.relative_powers["theta"]) for s in frontal
        ])) if frontal else 0.0

        channels = list(spectra.values())
        mean = {band: float(np.mean([s.relative_powers[band] for s in channels]))
                for band in ("delta", "theta", "alpha", "beta")} if channels else {}

        lookup = {normalize_label(label): s for label, s in spectra.items()}
        asymmetry = 0.0
        if "f3" in lookup and "f4" in lookup:
            f3 = lookup["f3"].absolute_powers["alpha"]
            f4 = lookup["f4"].absolute_powers["alpha"]
            if f3 + f4 > 0:
                asymmetry = (f4 - f3) / (f4 + f3)

        return SpectralIndices(
            beta_theta_ratio=beta_theta,
            focus_index=safe_ratio(mean["beta"], mean["alpha"]) if mean else 0.0,
            fatigue_index=safe_ratio(mean["theta"] + mean["delta"], mean["beta"]) if mean else 0.0,
            frontal_alpha_asymmetry=float(asymmetry),
        )
