import logging
import threading
import time
from typing import Optional

import torch

from IrradianceStudio.analysis.config import SHLightingConfig
from IrradianceStudio.analysis.core.factorial import FactorialCache
from IrradianceStudio.analysis.core.irradiance import (
    IRRADIANCE_N_BANDS,
    compute_irradiance_matrices,
    evaluate_irradiance,
)
from IrradianceStudio.analysis.core.projection import DEFAULT_BATCH_SIZE, project_radiance_to_coefficients
from IrradianceStudio.analysis.core.radiance import RadianceFn
from IrradianceStudio.analysis.core.sampler import setup_spherical_samples
from IrradianceStudio.analysis.core.sph import sph_indices_total
from IrradianceStudio.analysis.datatypes import SHLightingResultCPU, SHSamples
from IrradianceStudio.analysis.exceptions import InvalidParameter, IrradianceUnavailable, ProjectionCancelled

logger = logging.getLogger(__name__)


class SphericalHarmonics:
    """
    Computes the spherical harmonics of a radiance function and the
    matrices that approximate its diffuse irradiance.

    The sample set is generated once at construction and never changes.
    Each projection computes into a fresh buffer and swaps it in on success,
    after which the irradiance matrices are rebuilt (when n_bands >= 3).

    :params n_bands: number of bands B >= 1
    :params samples_per_axis: N >= 1, N^2 samples
    :params seed: makes the sample set reproducible
    :params device: torch device for samples and results
    :params factorial_cache: cache used by the normalization constants

    Source:
    [1] "Spherical Harmonic Lighting: The Gritty Details", Robin Green.
    [2] "An Efficient Representation for Irradiance Environment Maps", Ramamoorthi & Hanrahan.
    """

    def __init__(self, n_bands: int = 3, samples_per_axis: int = 100, seed: Optional[int] = None,
                 device: torch.device = "cpu", factorial_cache: Optional[FactorialCache] = None):
        if n_bands < 1:
            raise InvalidParameter(f'n_bands:{n_bands} must be >= 1')
        if samples_per_axis < 1:
            raise InvalidParameter(f'samples_per_axis:{samples_per_axis} must be >= 1')

        self._device = torch.device(device)
        self._samples = setup_spherical_samples(n_bands, samples_per_axis, seed=seed, device=self._device,
                                                factorial_cache=factorial_cache)
        self._coeffs = torch.zeros((sph_indices_total(n_bands), 3), dtype=torch.float64, device=self._device)
        self._matrices: Optional[torch.Tensor] = None
        self._stale = False
        self._lock = threading.Lock()

        logger.info(f"SphericalHarmonics with {n_bands} bands, {self.n_samples} samples on {self._device}")

    @classmethod
    def from_config(cls, config: SHLightingConfig,
                    factorial_cache: Optional[FactorialCache] = None) -> "SphericalHarmonics":
        return cls(n_bands=config.n_bands, samples_per_axis=config.samples_per_axis, seed=config.seed,
                   device=config.device, factorial_cache=factorial_cache)

    # -----------------------------
    # Getters
    # -----------------------------
    @property
    def n_bands(self) -> int:
        return self._samples.n_bands

    @property
    def n_coeffs(self) -> int:
        return self._samples.n_coeffs

    @property
    def n_samples(self) -> int:
        return self._samples.n_samples

    @property
    def samples(self) -> SHSamples:
        return self._samples

    @property
    def coefficients(self) -> torch.Tensor:
        """(n_coeffs, 3) result of the last completed projection, zeros before any."""
        return self._coeffs.clone()

    @property
    def has_irradiance(self) -> bool:
        return self._matrices is not None

    @property
    def is_stale(self) -> bool:
        """True when the last projection was cancelled; results belong to the one before it."""
        return self._stale

    @property
    def irradiance_matrices(self) -> torch.Tensor:
        """(3, 4, 4), one per color channel."""
        return self._require_matrices().clone()

    def _require_matrices(self) -> torch.Tensor:
        matrices = self._matrices
        if matrices is None:
            if self.n_bands < IRRADIANCE_N_BANDS:
                raise IrradianceUnavailable(f'irradiance needs at least {IRRADIANCE_N_BANDS} bands, '
                                            f'this context has {self.n_bands}')
            raise IrradianceUnavailable('irradiance requested before any completed projection')
        return matrices

    # -----------------------------
    # Projection
    # -----------------------------
    def project(self, radiance_fn: RadianceFn, accumulate: bool = False, batch_size: int = DEFAULT_BATCH_SIZE,
                num_workers: int = 1, cancel_event: Optional[threading.Event] = None,
                progress: bool = False) -> torch.Tensor:
        """
        Projects a radiance function and computes the SH coefficients.

        :params radiance_fn: (theta (n,), phi (n,)) -> (n, 3) linear rgb. If the radiance
            comes from an image, pass a source that looks up the texel for each direction.
        :params accumulate: add onto the current coefficients instead of replacing them
        :params batch_size, num_workers, cancel_event, progress: see project_radiance_to_coefficients

        :returns sph_coeffs: (n_coeffs, 3)
        """
        start_time = time.time()
        try:
            fresh = project_radiance_to_coefficients(self._samples, radiance_fn, batch_size=batch_size,
                                                     num_workers=num_workers, cancel_event=cancel_event,
                                                     progress=progress)
        except ProjectionCancelled:
            with self._lock:
                self._stale = True
            logger.warning("Projection cancelled, keeping the previous coefficients")
            raise

        with self._lock:
            coeffs = self._coeffs + fresh if accumulate else fresh
            matrices = compute_irradiance_matrices(coeffs) if self.n_bands >= IRRADIANCE_N_BANDS else None
            self._coeffs, self._matrices, self._stale = coeffs, matrices, False

        logger.info(f"Projection complete in {time.time() - start_time:.2f} seconds"
                    f"{' (accumulated)' if accumulate else ''}")
        if matrices is None:
            logger.debug(f"Skipping irradiance matrices, {self.n_bands} bands < {IRRADIANCE_N_BANDS}")
        return coeffs.clone()

    # -----------------------------
    # Irradiance
    # -----------------------------
    def irradiance(self, normals: torch.Tensor) -> torch.Tensor:
        """
        Approximate irradiance for unit normals.

        :params normals: (3,) or (..., 3), expected unit length
        :returns irradiance: (3,) or (..., 3) rgb
        """
        normals = torch.as_tensor(normals, dtype=torch.float64)
        return evaluate_irradiance(self._require_matrices(), normals)

    def to_cpu(self) -> SHLightingResultCPU:
        with self._lock:
            coeffs, matrices = self._coeffs, self._matrices
        return SHLightingResultCPU(
            n_bands=self.n_bands,
            samples_per_axis=self._samples.samples_per_axis,
            sph_coeffs=coeffs.cpu().numpy().tolist(),
            irradiance_matrices=matrices.cpu().numpy().tolist() if matrices is not None else None,
        )
