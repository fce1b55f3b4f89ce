import math
from typing import Optional, Union

import torch

from IrradianceStudio.analysis.core.factorial import DEFAULT_FACTORIAL_CACHE, FactorialCache
from IrradianceStudio.analysis.exceptions import InvalidParameter

Scalar = Union[float, torch.Tensor]

SQRT2 = math.sqrt(2.0)


# -----------------------------
# Spherical Harmonic Indexing
# -----------------------------
def sph_indices_total(n_bands: int) -> int:  # n_bands^2
    return n_bands * n_bands

def sph_index_from_lm(l: int, m: int) -> int:  # noqa: E741
    # band l occupies indices [l*l, (l+1)^2 - 1], with m mapped as (l + m)
    # => index = l*l + l + m = l*(l+1) + m
    return l * (l + 1) + m

def l_from_index(idx: int) -> int:
    # exact integer sqrt: largest l with l*l <= idx
    return math.isqrt(idx)

def lm_from_index(idx: int) -> tuple[int, int]:
    l = l_from_index(idx)  # noqa: E741
    m = idx - (l * l + l)
    return l, m

def sph_n_bands_from_indices_total(n_terms: int) -> int:
    root = math.isqrt(n_terms)
    if root * root != n_terms:
        raise InvalidParameter(f'n_terms={n_terms} is not a perfect square')
    return root


# -----------------------------
# Basis Evaluator
# -----------------------------
def _check_lm(l: int, m: int) -> None:  # noqa: E741
    if l < 0:
        raise InvalidParameter(f'band l:{l} must be >= 0')
    if abs(m) > l:
        raise InvalidParameter(f'order m:{m} must satisfy -l <= m <= l for l:{l}')


def _check_angles(theta: Scalar, phi: Scalar) -> None:
    # phi is periodic, any finite value is accepted
    if isinstance(theta, torch.Tensor) or isinstance(phi, torch.Tensor):
        theta, phi = torch.as_tensor(theta), torch.as_tensor(phi)
        if not (torch.all(torch.isfinite(theta)) and torch.all(torch.isfinite(phi))):
            raise InvalidParameter('theta and phi must be finite, got NaN or inf')
        if torch.any((theta < 0.0) | (theta > math.pi)):
            raise InvalidParameter(f'theta must lie in [0, pi], got range '
                                   f'[{torch.min(theta).item():.6f}, {torch.max(theta).item():.6f}]')
    else:
        if not (math.isfinite(theta) and math.isfinite(phi)):
            raise InvalidParameter(f'theta:{theta} and phi:{phi} must be finite')
        if not 0.0 <= theta <= math.pi:
            raise InvalidParameter(f'theta:{theta} must lie in [0, pi]')


def associated_legendre(l: int, m: int, x: Scalar) -> Scalar:  # noqa: E741
    """
    Associated Legendre polynomial P_l^m(x).

    Seeds P_m^m with the double factorial product (2m-1)!! (1-x^2)^(m/2),
    derives P_{m+1}^m = x (2m+1) P_m^m and then climbs in l with the three
    term recurrence

        (l - m) P_l^m = x (2l - 1) P_{l-1}^m - (l + m - 1) P_{l-2}^m

    The Condon-Shortley phase (-1)^m is left out, so band 1 of the real
    basis is aligned with +x, +y, +z.

    :params l: band, l >= 0
    :params m: order, 0 <= m <= l
    :params x: float or tensor with finite values in [-1, 1]

    Source:
    [1] "Spherical Harmonic Lighting: The Gritty Details", P function.
    """
    if m < 0 or m > l:
        raise InvalidParameter(f'associated legendre needs 0 <= m <= l, got l:{l} m:{m}')

    is_tensor = isinstance(x, torch.Tensor)
    if is_tensor:
        if not torch.all(torch.isfinite(x)):
            raise InvalidParameter('x must be finite, got NaN or inf')
        if torch.any(torch.abs(x) > 1.0):
            raise InvalidParameter(f'x must lie in [-1, 1], max |x| is {torch.max(torch.abs(x)).item():.6f}')
    elif not math.isfinite(x) or not -1.0 <= x <= 1.0:
        raise InvalidParameter(f'x:{x} must lie in [-1, 1]')

    pmm = torch.ones_like(x) if is_tensor else 1.0
    if m > 0:
        somx2 = torch.sqrt((1.0 - x) * (1.0 + x)) if is_tensor else math.sqrt((1.0 - x) * (1.0 + x))
        fact = 1.0
        for _ in range(1, m + 1):
            pmm = pmm * fact * somx2
            fact += 2.0
    if l == m:
        return pmm

    pmmp1 = x * (2.0 * m + 1.0) * pmm
    if l == m + 1:
        return pmmp1

    pll = pmmp1
    for ll in range(m + 2, l + 1):
        pll = ((2.0 * ll - 1.0) * x * pmmp1 - (ll + m - 1.0) * pmm) / (ll - m)
        pmm, pmmp1 = pmmp1, pll
    return pll


def normalization_constant(l: int, m: int, factorial_cache: Optional[FactorialCache] = None) -> float:  # noqa: E741
    """
    K(l, m) = sqrt( (2l+1) (l-m)! / (4 pi (l+m)!) ) for 0 <= m <= l.
    """
    if m < 0 or m > l:
        raise InvalidParameter(f'normalization constant needs 0 <= m <= l, got l:{l} m:{m}')
    fact = factorial_cache or DEFAULT_FACTORIAL_CACHE
    return math.sqrt(((2.0 * l + 1.0) * fact(l - m)) / (4.0 * math.pi * fact(l + m)))


def sh_basis(l: int, m: int, theta: Scalar, phi: Scalar,  # noqa: E741
             factorial_cache: Optional[FactorialCache] = None) -> Scalar:
    """
    Real spherical harmonic Y_l^m(theta, phi).

      Y_l^0  =      K(l,0)  P_l^0(cos theta)
      Y_l^m  = √2 K(l,m)  cos(m phi)  P_l^m(cos theta),    m > 0
      Y_l^m  = √2 K(l,-m) sin(-m phi) P_l^-m(cos theta),   m < 0

    :params l: band in [0, n_bands)
    :params m: order in [-l, l]
    :params theta: inclination in [0, pi] (float or tensor)
    :params phi: azimuth in [0, 2pi) (float or tensor)
    """
    _check_lm(l, m)
    _check_angles(theta, phi)
    is_tensor = isinstance(theta, torch.Tensor) or isinstance(phi, torch.Tensor)
    cos, sin = (torch.cos, torch.sin) if is_tensor else (math.cos, math.sin)
    if is_tensor:
        theta = torch.as_tensor(theta, dtype=torch.float64)
        phi = torch.as_tensor(phi, dtype=torch.float64, device=theta.device)

    x = torch.clamp(cos(theta), -1.0, 1.0) if is_tensor else max(-1.0, min(1.0, cos(theta)))

    if m == 0:
        return normalization_constant(l, 0, factorial_cache) * associated_legendre(l, 0, x)
    elif m > 0:
        return SQRT2 * normalization_constant(l, m, factorial_cache) * cos(m * phi) * associated_legendre(l, m, x)
    else:
        return SQRT2 * normalization_constant(l, -m, factorial_cache) * sin(-m * phi) * associated_legendre(l, -m, x)


def spherical_to_sph_basis(spherical_coordinates: torch.Tensor, n_bands: int,
                           factorial_cache: Optional[FactorialCache] = None) -> torch.Tensor:
    """
    Looping version (clear & reliable), one call of :func:`sh_basis` per (l, m).

    :params spherical_coordinates (..., 2): (inclination, azimuth) at each position.
    :params n_bands: number of bands B, l in [0, B).
    :returns Ylm (..., B^2): float64 basis values, indexed by sph_index_from_lm.
    """
    if n_bands < 1:
        raise InvalidParameter(f'n_bands:{n_bands} must be >= 1')

    theta = spherical_coordinates[..., 0].to(torch.float64)
    phi = spherical_coordinates[..., 1].to(torch.float64)
    _check_angles(theta, phi)
    Ylm = torch.empty((*spherical_coordinates.shape[:-1], sph_indices_total(n_bands)),
                      dtype=torch.float64, device=spherical_coordinates.device)
    for l in range(n_bands):  # noqa: E741
        for m in range(-l, l + 1):
            Ylm[..., sph_index_from_lm(l, m)] = sh_basis(l, m, theta, phi, factorial_cache)
    return Ylm


def spherical_to_sph_basis_vectorized(spherical_coordinates: torch.Tensor, n_bands: int,
                                      factorial_cache: Optional[FactorialCache] = None) -> torch.Tensor:
    """
    Vectorized real spherical harmonics for all l < n_bands. Builds every
    P_l^m once with the diagonal seed and the upward (in l) recurrence, then
    applies K(l,m) and the cos/sin azimuthal factors. All math in float64.

    :params spherical_coordinates (..., 2): (inclination, azimuth) at each position.
    :params n_bands: number of bands B.
    :returns Ylm (..., B^2)
    """
    if n_bands < 1:
        raise InvalidParameter(f'n_bands:{n_bands} must be >= 1')
    fact = factorial_cache or DEFAULT_FACTORIAL_CACHE

    # ---- precision & angles ----
    theta = spherical_coordinates[..., 0].to(torch.float64)
    phi   = spherical_coordinates[..., 1].to(torch.float64)
    _check_angles(theta, phi)
    x     = torch.clamp(torch.cos(theta), -1.0, 1.0)      # x = cos(theta)
    s     = torch.sqrt((1.0 - x) * (1.0 + x))             # sin(theta)

    Hshape = spherical_coordinates.shape[:-1]
    n_terms = sph_indices_total(n_bands)
    l_max = n_bands - 1

    # ---- build all P_l^m(x) for m>=0, stored in the m>=0 slots ----
    P = torch.zeros((*Hshape, n_terms), dtype=torch.float64, device=x.device)
    for m in range(0, n_bands):
        # Diagonal P_m^m
        pmm = torch.ones_like(x)
        for k in range(1, m + 1):
            pmm = pmm * (2.0 * k - 1.0) * s
        P[..., sph_index_from_lm(m, m)] = pmm
        # Next band P_{m+1}^m
        if m < l_max:
            P[..., sph_index_from_lm(m + 1, m)] = (2.0 * m + 1.0) * x * pmm
        # Upward recurrence for l >= m+2
        for l in range(m + 2, n_bands):  # noqa: E741
            P[..., sph_index_from_lm(l, m)] = (
                (2.0 * l - 1.0) * x * P[..., sph_index_from_lm(l - 1, m)]
                - (l + m - 1.0) * P[..., sph_index_from_lm(l - 2, m)]
            ) / (l - m)

    # ---- assemble real Y ----
    Y = torch.zeros((*Hshape, n_terms), dtype=torch.float64, device=x.device)
    for l in range(n_bands):  # noqa: E741
        idx_0 = sph_index_from_lm(l, 0)
        Y[..., idx_0] = normalization_constant(l, 0, fact) * P[..., idx_0]
        for m in range(1, l + 1):
            idx_pos = sph_index_from_lm(l,  m)
            idx_neg = sph_index_from_lm(l, -m)
            common  = SQRT2 * normalization_constant(l, m, fact) * P[..., idx_pos]
            Y[..., idx_pos] = common * torch.cos(m * phi)
            Y[..., idx_neg] = common * torch.sin(m * phi)

    return Y
