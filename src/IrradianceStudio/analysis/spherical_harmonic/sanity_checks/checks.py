"""
Numerical sanity checks for the spherical harmonic engine.

This module verifies:
1. Cached vs iterative factorial agreement
2. Looping vs vectorized basis evaluation (accuracy and speed)
3. Orthonormality of the basis under Monte-Carlo integration
4. Projection of a constant radiance onto L00 only
5. Isotropic irradiance from uniform white light
"""

import math
import time
from typing import Tuple

import torch

from IrradianceStudio.analysis.core.factorial import FactorialCache, iterative_factorial
from IrradianceStudio.analysis.core.radiance import ConstantRadiance
from IrradianceStudio.analysis.core.sampler import setup_spherical_samples
from IrradianceStudio.analysis.core.sph import (
    lm_from_index,
    spherical_to_sph_basis,
    spherical_to_sph_basis_vectorized,
)
from IrradianceStudio.analysis.spherical_harmonic.sph_context import SphericalHarmonics
from IrradianceStudio.analysis.utils.transforms import generate_spherical_coordinates_map


def check_factorial_cache(max_n: int = 40) -> bool:
    cache = FactorialCache()
    mismatches = [n for n in range(max_n + 1) if cache(n) != iterative_factorial(n)]
    if mismatches:
        print(f"❌ Cached factorial differs from iterative factorial for n in {mismatches}")
        return False
    print(f"✓ Cached factorial matches iterative factorial for n in [0, {max_n}]")
    return True


def check_vectorized_vs_looping(H: int = 32, W: int = 64, n_bands: int = 5) -> Tuple[bool, dict]:
    """
    Compare the looping and vectorized basis evaluations for accuracy and speed.
    """
    spherical_coordinates = generate_spherical_coordinates_map(H, W)
    timing_results = {}

    start_time = time.time()
    looping = spherical_to_sph_basis(spherical_coordinates, n_bands)
    timing_results['looping'] = time.time() - start_time

    start_time = time.time()
    vectorized = spherical_to_sph_basis_vectorized(spherical_coordinates, n_bands)
    timing_results['vectorized'] = time.time() - start_time

    is_close = torch.allclose(looping, vectorized, rtol=1e-9, atol=1e-12)
    if not is_close:
        for i in range(looping.shape[-1]):
            l, m = lm_from_index(i)  # noqa: E741
            diff = torch.max(torch.abs(looping[..., i] - vectorized[..., i])).item()
            if diff > 1e-12:
                print(f"Results differ for term {i} (Y_{l}^{m})! Max difference: {diff:.2e}")
        print("❌ Looping vs vectorized basis differ!")
    else:
        print(f"✓ Vectorized basis matches looping basis for {n_bands} bands")

    for method, time_taken in timing_results.items():
        print(f"  {method}: {time_taken:.4f}s")
    return is_close, timing_results


def check_orthonormality(n_bands: int = 4, samples_per_axis: int = 100, tolerance: float = 0.05,
                         seed: int = 0) -> Tuple[bool, float]:
    """
    Monte-Carlo Gram matrix of the basis should be close to identity.

    :returns (passed, max_error)
    """
    samples = setup_spherical_samples(n_bands, samples_per_axis, seed=seed)
    basis = samples.basis
    gram = (4.0 * math.pi / samples.n_samples) * basis.T @ basis
    max_error = torch.max(torch.abs(gram - torch.eye(gram.shape[0], dtype=gram.dtype))).item()

    passed = max_error < tolerance
    symbol = "✓" if passed else "❌"
    print(f"{symbol} Orthonormality with {samples.n_samples} samples: max |G - I| = {max_error:.2e}")
    return passed, max_error


def check_constant_projection(samples_per_axis: int = 50, tolerance: float = 0.05, seed: int = 0) -> bool:
    sph = SphericalHarmonics(n_bands=3, samples_per_axis=samples_per_axis, seed=seed)
    coeffs = sph.project(ConstantRadiance([1.0, 1.0, 1.0]))

    dc_error = torch.max(torch.abs(coeffs[0] - math.sqrt(4.0 * math.pi))).item()
    higher = torch.max(torch.abs(coeffs[1:])).item()
    passed = dc_error < 1e-9 and higher < tolerance
    symbol = "✓" if passed else "❌"
    print(f"{symbol} Constant projection: |L00 - sqrt(4pi)| = {dc_error:.2e}, max |L_l>0| = {higher:.2e}")
    return passed


def check_isotropic_irradiance(samples_per_axis: int = 50, tolerance: float = 0.1, seed: int = 0) -> bool:
    sph = SphericalHarmonics(n_bands=3, samples_per_axis=samples_per_axis, seed=seed)
    sph.project(ConstantRadiance([1.0, 1.0, 1.0]))

    normals = setup_spherical_samples(1, 16, seed=seed + 1).cartesian
    irradiance = sph.irradiance(normals)
    max_error = torch.max(torch.abs(irradiance - math.pi)).item()
    passed = max_error < tolerance
    symbol = "✓" if passed else "❌"
    print(f"{symbol} Uniform white irradiance: max |E(n) - pi| = {max_error:.2e} over {normals.shape[0]} normals")
    return passed


def run_all_sanity_checks(H: int = 32, W: int = 64, n_bands: int = 4, samples_per_axis: int = 100) -> dict:
    """
    Run all sanity checks and return comprehensive results.
    """
    print("=" * 60)
    results = {}

    print("1. Testing cached vs iterative factorial:")
    results['factorial_match'] = check_factorial_cache()
    print()

    print("2. Testing looping vs vectorized basis:")
    results['basis_match'], results['timing_results'] = check_vectorized_vs_looping(H, W, n_bands)
    print()

    print("3. Testing orthonormality:")
    results['orthonormal'], results['orthonormality_error'] = check_orthonormality(n_bands, samples_per_axis)
    print()

    print("4. Testing constant projection:")
    results['constant_projection'] = check_constant_projection()
    print()

    print("5. Testing isotropic irradiance:")
    results['isotropic_irradiance'] = check_isotropic_irradiance()
    print()

    results['all_passed'] = all([
        results['factorial_match'],
        results['basis_match'],
        results['orthonormal'],
        results['constant_projection'],
        results['isotropic_irradiance'],
    ])
    return results
