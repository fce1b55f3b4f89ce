"""
Configuration for baking spherical harmonic lighting.
"""

from dataclasses import asdict, dataclass, fields
from typing import Optional

import torch

from IrradianceStudio.analysis.core.projection import DEFAULT_BATCH_SIZE
from IrradianceStudio.analysis.exceptions import InvalidParameter

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class SHLightingConfig:
    """Parameters of a SphericalHarmonics context and its projections."""

    # Basis / sampling
    n_bands: int = 3  # number of bands B, B^2 coefficients
    samples_per_axis: int = 100  # N, N^2 jittered samples
    seed: Optional[int] = None  # None draws fresh samples every run

    # Projection
    batch_size: int = DEFAULT_BATCH_SIZE
    num_workers: int = 1

    # Device
    device: str = "auto"  # auto, cuda, cpu

    # Logging
    log_level: str = "INFO"

    def __post_init__(self):
        if self.device == "auto":
            self.device = "cuda" if torch.cuda.is_available() else "cpu"

        if self.n_bands < 1:
            raise InvalidParameter(f"n_bands must be >= 1, got {self.n_bands}")
        if self.samples_per_axis < 1:
            raise InvalidParameter(f"samples_per_axis must be >= 1, got {self.samples_per_axis}")
        if self.batch_size < 1:
            raise InvalidParameter(f"batch_size must be >= 1, got {self.batch_size}")
        if self.num_workers < 1:
            raise InvalidParameter(f"num_workers must be >= 1, got {self.num_workers}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise InvalidParameter(f"log_level must be one of {LOG_LEVELS}, got {self.log_level}")
        self.log_level = self.log_level.upper()

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "SHLightingConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(config_dict) - known
        if unknown:
            raise InvalidParameter(f"unknown config keys: {sorted(unknown)}")
        return cls(**config_dict)
