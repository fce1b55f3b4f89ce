"""
Common data types for spherical harmonic lighting.
"""

from dataclasses import dataclass
from typing import List, Optional

import torch


@dataclass(frozen=True)
class SHSamples:
    """Jittered stratified sample directions with their precomputed basis values."""
    spherical: torch.Tensor  # (n_samples, 2) inclination theta, azimuth phi
    cartesian: torch.Tensor  # (n_samples, 3) unit direction [x, y, z]
    basis: torch.Tensor  # (n_samples, n_coeffs) Y_lm at every sample, indexed l*(l+1)+m
    n_bands: int
    samples_per_axis: int

    @property
    def n_samples(self) -> int:
        return self.spherical.shape[0]

    @property
    def n_coeffs(self) -> int:
        return self.basis.shape[-1]


@dataclass
class SHLightingResultCPU:
    """A baked lighting result with CPU/serializable data."""
    n_bands: int
    samples_per_axis: int
    sph_coeffs: List[List[float]]  # (n_coeffs, 3) rgb per coefficient
    irradiance_matrices: Optional[List[List[List[float]]]]  # (3, 4, 4) or None when n_bands < 3

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'n_bands': self.n_bands,
            'samples_per_axis': self.samples_per_axis,
            'sph_coeffs': self.sph_coeffs,
            'irradiance_matrices': self.irradiance_matrices
        }
