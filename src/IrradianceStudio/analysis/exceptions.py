"""
Errors raised by the spherical harmonic lighting engine.
"""


class IrradianceStudioError(Exception):
    """Base class for every error raised by IrradianceStudio."""


class InvalidParameter(IrradianceStudioError, ValueError):
    """A band count, sample count, (l, m, x) triple or radiance value is out of its domain."""


class IrradianceUnavailable(IrradianceStudioError, RuntimeError):
    """Irradiance was requested before any projection, or with fewer than 3 bands."""


class UnsupportedConversion(IrradianceStudioError, ValueError):
    """A color space conversion that is not in the supported table."""


class ProjectionCancelled(IrradianceStudioError, RuntimeError):
    """A projection was cancelled between sample batches. Previous results are untouched."""
