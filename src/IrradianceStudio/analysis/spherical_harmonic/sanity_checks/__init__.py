"""
Sanity checks and verification for the spherical harmonic engine.

This package contains:
- checks: numerical equivalence, orthonormality and projection checks
"""

from .checks import (
    check_factorial_cache,
    check_vectorized_vs_looping,
    check_orthonormality,
    check_constant_projection,
    check_isotropic_irradiance,
    run_all_sanity_checks
)

__all__ = [
    'check_factorial_cache',
    'check_vectorized_vs_looping',
    'check_orthonormality',
    'check_constant_projection',
    'check_isotropic_irradiance',
    'run_all_sanity_checks'
]
