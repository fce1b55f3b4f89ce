import logging
import math
import time
from typing import Optional

import torch
from einops import rearrange

from IrradianceStudio.analysis.core.factorial import FactorialCache
from IrradianceStudio.analysis.core.sph import spherical_to_sph_basis_vectorized
from IrradianceStudio.analysis.datatypes import SHSamples
from IrradianceStudio.analysis.exceptions import InvalidParameter
from IrradianceStudio.analysis.utils.transforms import spherical_to_cartesian

logger = logging.getLogger(__name__)


def jittered_unit_square(samples_per_axis: int, generator: Optional[torch.Generator] = None,
                         device: torch.device = None) -> torch.Tensor:
    """
    One uniformly jittered point inside every cell of an N x N grid over [0, 1)^2.

    :returns points: (N*N, 2), cell (a, b) at row a*N + b holds ((a + rx)/N, (b + ry)/N)
    """
    n = samples_per_axis
    a = torch.arange(n, dtype=torch.float64, device=device)
    grid = torch.stack(torch.meshgrid(a, a, indexing="ij"), dim=-1)  # (N, N, 2)
    jitter = torch.rand((n, n, 2), generator=generator, dtype=torch.float64, device=device)
    return rearrange((grid + jitter) / n, "a b c -> (a b) c")


def setup_spherical_samples(n_bands: int, samples_per_axis: int, seed: Optional[int] = None,
                            generator: Optional[torch.Generator] = None, device: torch.device = None,
                            factorial_cache: Optional[FactorialCache] = None) -> SHSamples:
    """
    Uniformly distributed samples across the sphere using jittered stratification,
    with every SH basis value precomputed per sample.

    Each grid cell point (x, y) is mapped with the area preserving
    theta = 2 acos(sqrt(1 - x)), phi = 2 pi y.

    :params n_bands: number of bands B >= 1
    :params samples_per_axis: N >= 1, N^2 samples are produced
    :params seed: seeds a private generator when no generator is given
    :params generator: explicit torch.Generator (wins over seed)
    :returns SHSamples
    """
    if n_bands < 1:
        raise InvalidParameter(f'n_bands:{n_bands} must be >= 1')
    if samples_per_axis < 1:
        raise InvalidParameter(f'samples_per_axis:{samples_per_axis} must be >= 1')

    if generator is None and seed is not None:
        generator = torch.Generator(device=device if device is not None else "cpu")
        generator.manual_seed(seed)

    start_time = time.time()
    points = jittered_unit_square(samples_per_axis, generator=generator, device=device)  # (N^2, 2)

    theta = 2.0 * torch.arccos(torch.sqrt(1.0 - points[:, 0]))
    phi = 2.0 * math.pi * points[:, 1]
    spherical = torch.stack([theta, phi], dim=-1)       # (N^2, 2)
    cartesian = spherical_to_cartesian(spherical)       # (N^2, 3)
    basis = spherical_to_sph_basis_vectorized(spherical, n_bands, factorial_cache)  # (N^2, B^2)

    logger.debug(f"Generated {spherical.shape[0]} samples for {n_bands} bands in {time.time() - start_time:.3f}s")

    return SHSamples(spherical=spherical, cartesian=cartesian, basis=basis,
                     n_bands=n_bands, samples_per_axis=samples_per_axis)
