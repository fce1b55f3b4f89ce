import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import torch
from einops import einsum
from tqdm import tqdm

from IrradianceStudio.analysis.core.radiance import RadianceFn, evaluate_radiance
from IrradianceStudio.analysis.datatypes import SHSamples
from IrradianceStudio.analysis.exceptions import InvalidParameter, ProjectionCancelled

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 4096


def _project_batch(samples: SHSamples, radiance_fn: RadianceFn, start: int, stop: int,
                   cancel_event: Optional[threading.Event]) -> torch.Tensor:
    """
    Unscaled partial sum over samples [start, stop).

    :returns partial: (n_coeffs, 3) = sum_i radiance_i * basis_i
    """
    if cancel_event is not None and cancel_event.is_set():
        raise ProjectionCancelled(f'projection cancelled before samples [{start}, {stop})')

    theta = samples.spherical[start:stop, 0]
    phi = samples.spherical[start:stop, 1]
    radiance = evaluate_radiance(radiance_fn, theta, phi)   # (n, 3)
    basis = samples.basis[start:stop]                        # (n, n_coeffs)
    return einsum(basis, radiance, "n n_terms, n c -> n_terms c")


def project_radiance_to_coefficients(samples: SHSamples, radiance_fn: RadianceFn,
                                     batch_size: int = DEFAULT_BATCH_SIZE, num_workers: int = 1,
                                     cancel_event: Optional[threading.Event] = None,
                                     progress: bool = False) -> torch.Tensor:
    """
    Monte-Carlo projection of a radiance function onto the SH basis.

        coeff[n] = (4 pi / n_samples) * sum_i radiance(theta_i, phi_i) * Y_n(theta_i, phi_i)

    The result is always computed into a fresh buffer; nothing is written
    anywhere until every batch is done.

    :params samples: precomputed SHSamples
    :params radiance_fn: callable (theta (n,), phi (n,)) -> (n, 3) linear rgb
    :params batch_size: samples per radiance call, cancellation is checked between batches
    :params num_workers: >1 evaluates batches on a thread pool, partial sums are reduced in batch order
    :params cancel_event: set it from another thread to stop with ProjectionCancelled
    :params progress: show a tqdm progress bar over batches

    :returns sph_coeffs: (n_coeffs, 3) float64
    """
    if batch_size < 1:
        raise InvalidParameter(f'batch_size:{batch_size} must be >= 1')
    if num_workers < 1:
        raise InvalidParameter(f'num_workers:{num_workers} must be >= 1')

    n_samples = samples.n_samples
    bounds = [(start, min(start + batch_size, n_samples)) for start in range(0, n_samples, batch_size)]
    start_time = time.time()

    partials: List[torch.Tensor] = []
    if num_workers == 1:
        for start, stop in tqdm(bounds, desc="Projecting radiance", disable=not progress):
            partials.append(_project_batch(samples, radiance_fn, start, stop, cancel_event))
    else:
        with ThreadPoolExecutor(max_workers=num_workers) as pool:
            futures = [pool.submit(_project_batch, samples, radiance_fn, start, stop, cancel_event)
                       for start, stop in bounds]
            try:
                for future in tqdm(futures, desc="Projecting radiance", disable=not progress):
                    partials.append(future.result())
            except ProjectionCancelled:
                for future in futures:
                    future.cancel()
                raise

    sph_coeffs = torch.zeros((samples.n_coeffs, 3), dtype=torch.float64, device=samples.basis.device)
    for partial in partials:
        sph_coeffs += partial

    # solid angle of the sphere over the number of samples
    sph_coeffs *= (4.0 * math.pi) / n_samples

    logger.debug(f"Projected {n_samples} samples onto {samples.n_coeffs} coefficients "
                 f"in {len(bounds)} batches ({time.time() - start_time:.3f}s)")
    return sph_coeffs
