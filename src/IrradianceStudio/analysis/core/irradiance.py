"""
Quadratic form irradiance from the first 9 SH coefficients.

    E(n) = n^T M n,   n = [x, y, z, 1]

with one symmetric 4x4 matrix M per color channel.

Source:
[1] Ramamoorthi & Hanrahan, "An Efficient Representation for Irradiance Environment Maps", Equation 12.
"""

import logging
import math

import torch
from einops import einsum, rearrange

from IrradianceStudio.analysis.core.sph import sph_n_bands_from_indices_total
from IrradianceStudio.analysis.exceptions import InvalidParameter
from IrradianceStudio.analysis.utils.transforms import generate_spherical_coordinates_map, spherical_to_cartesian

logger = logging.getLogger(__name__)

IRRADIANCE_N_BANDS = 3

# Clamped cosine lobe per band
A0 = math.pi
A1 = 2.0 * math.pi / 3.0
A2 = math.pi / 4.0

K0 = 0.25 * math.sqrt(15.0 / math.pi) * A2
K1 = 0.25 * math.sqrt(3.0 / math.pi) * A1
K2 = 0.5 * math.sqrt(1.0 / math.pi) * A0
K3 = 0.25 * math.sqrt(5.0 / math.pi) * A2


def compute_irradiance_matrices(sph_coeffs: torch.Tensor) -> torch.Tensor:
    """
    Build the irradiance matrix of every color channel.

    :params sph_coeffs: (B^2, 3) with B >= 3, ordered
        L00, L1-1, L10, L11, L2-2, L2-1, L20, L21, L22, ...
    :returns matrices: (3, 4, 4) float64, symmetric
    """
    if sph_coeffs.dim() != 2 or sph_coeffs.shape[-1] != 3:
        raise InvalidParameter(f'sph_coeffs must be (n_coeffs, 3), got shape {tuple(sph_coeffs.shape)}')
    n_bands = sph_n_bands_from_indices_total(sph_coeffs.shape[0])
    if n_bands < IRRADIANCE_N_BANDS:
        raise InvalidParameter(f'irradiance matrices need {IRRADIANCE_N_BANDS} bands, '
                               f'got {n_bands} ({sph_coeffs.shape[0]} coefficients)')

    L = sph_coeffs[:9].to(torch.float64)  # (9, 3)
    L00, L1m1, L10, L11, L2m2, L2m1, L20, L21, L22 = L.unbind(dim=0)

    matrices = torch.zeros((3, 4, 4), dtype=torch.float64, device=sph_coeffs.device)

    matrices[:, 0, 0] = K0 * L22
    matrices[:, 0, 1] = K0 * L2m2
    matrices[:, 0, 2] = K0 * L21
    matrices[:, 0, 3] = K1 * L11

    matrices[:, 1, 1] = -K0 * L22
    matrices[:, 1, 2] = K0 * L2m1
    matrices[:, 1, 3] = K1 * L1m1

    matrices[:, 2, 2] = 3.0 * K3 * L20
    matrices[:, 2, 3] = K1 * L10

    matrices[:, 3, 3] = K2 * L00 - K3 * L20

    # fill the lower triangle by symmetry
    upper = torch.triu(matrices, diagonal=1)
    return matrices + rearrange(upper, "c i j -> c j i")


def evaluate_irradiance(matrices: torch.Tensor, normals: torch.Tensor) -> torch.Tensor:
    """
    Irradiance for unit normals. Normals are not normalized here; a non unit
    input gives a scaled, not physically meaningful, value.

    :params matrices: (3, 4, 4)
    :params normals: (..., 3)
    :returns irradiance: (..., 3) rgb
    """
    if normals.shape[-1] != 3:
        raise InvalidParameter(f'normals must be (..., 3), got shape {tuple(normals.shape)}')

    normals = normals.to(dtype=torch.float64, device=matrices.device)
    batch_shape = normals.shape[:-1]
    homogeneous = torch.cat([normals, torch.ones_like(normals[..., :1])], dim=-1)  # (..., 4)
    homogeneous = homogeneous.reshape(-1, 4)                                        # (n, 4)
    irradiance = einsum(homogeneous, matrices, homogeneous, "n i, c i j, n j -> n c")
    return irradiance.reshape(*batch_shape, 3)


def render_irradiance_map(matrices: torch.Tensor, H: int, W: int) -> torch.Tensor:
    """
    Irradiance for the normal of every texel of an equirectangular map.

    :params matrices: (3, 4, 4)
    :returns irradiance_map: (H, W, 3)
    """
    spherical_coordinates = generate_spherical_coordinates_map(H, W, device=matrices.device)
    normals = spherical_to_cartesian(spherical_coordinates)  # (H, W, 3)
    return evaluate_irradiance(matrices, normals)
