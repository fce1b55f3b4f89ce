import math
import threading

import pytest
import torch

from IrradianceStudio.analysis.core.projection import project_radiance_to_coefficients
from IrradianceStudio.analysis.core.radiance import ConstantRadiance, PointwiseRadiance
from IrradianceStudio.analysis.core.sampler import setup_spherical_samples
from IrradianceStudio.analysis.exceptions import InvalidParameter, ProjectionCancelled
from IrradianceStudio.analysis.utils.transforms import spherical_to_cartesian


@pytest.fixture(scope="module")
def samples():
    return setup_spherical_samples(n_bands=3, samples_per_axis=50, seed=0)


def sky_radiance(theta, phi):
    """Bright upper hemisphere with a warm tint toward +x."""
    d = spherical_to_cartesian(torch.stack([theta, phi], dim=-1))
    up = torch.clamp(d[:, 2], min=0.0)
    return torch.stack([up + 0.5 * torch.clamp(d[:, 0], min=0.0), up, 0.5 * up], dim=-1)


def test_constant_radiance_projects_to_dc_only(samples):
    color = torch.tensor([0.2, 0.5, 1.0], dtype=torch.float64)
    coeffs = project_radiance_to_coefficients(samples, ConstantRadiance(color))

    assert coeffs.shape == (9, 3)
    assert coeffs.dtype == torch.float64
    assert torch.allclose(coeffs[0], color * math.sqrt(4.0 * math.pi), atol=1e-9)
    assert torch.max(torch.abs(coeffs[1:])).item() < 0.05


def test_batching_does_not_change_result(samples):
    reference = project_radiance_to_coefficients(samples, sky_radiance)
    batched = project_radiance_to_coefficients(samples, sky_radiance, batch_size=37)
    assert torch.allclose(reference, batched, atol=1e-12)


def test_workers_match_sequential(samples):
    sequential = project_radiance_to_coefficients(samples, sky_radiance, batch_size=100)
    threaded = project_radiance_to_coefficients(samples, sky_radiance, batch_size=100, num_workers=4)
    assert torch.allclose(sequential, threaded, atol=1e-12)


def test_pointwise_callback_matches_batched():
    small = setup_spherical_samples(n_bands=3, samples_per_axis=6, seed=1)

    def scalar_sky(theta, phi):
        z = max(math.cos(theta), 0.0)
        x = max(math.sin(theta) * math.cos(phi), 0.0)
        return (z + 0.5 * x, z, 0.5 * z)

    pointwise = project_radiance_to_coefficients(small, PointwiseRadiance(scalar_sky))
    batched = project_radiance_to_coefficients(small, sky_radiance)
    assert torch.allclose(pointwise, batched, atol=1e-12)


def test_scaling_is_linear(samples):
    single = project_radiance_to_coefficients(samples, sky_radiance)
    double = project_radiance_to_coefficients(samples, lambda t, p: 2.0 * sky_radiance(t, p))
    assert torch.allclose(double, 2.0 * single, atol=1e-12)


def test_cancel_before_start(samples):
    event = threading.Event()
    event.set()
    with pytest.raises(ProjectionCancelled):
        project_radiance_to_coefficients(samples, sky_radiance, cancel_event=event)


def test_cancel_between_batches(samples):
    event = threading.Event()
    calls = []

    def radiance(theta, phi):
        calls.append(theta.shape[0])
        event.set()
        return sky_radiance(theta, phi)

    with pytest.raises(ProjectionCancelled):
        project_radiance_to_coefficients(samples, radiance, batch_size=500, cancel_event=event)
    assert calls == [500]


def test_cancel_with_workers(samples):
    event = threading.Event()

    def radiance(theta, phi):
        event.set()
        return sky_radiance(theta, phi)

    with pytest.raises(ProjectionCancelled):
        project_radiance_to_coefficients(samples, radiance, batch_size=10, num_workers=2, cancel_event=event)


def test_bad_radiance_shape(samples):
    with pytest.raises(InvalidParameter):
        project_radiance_to_coefficients(samples, lambda t, p: torch.ones(t.shape[0], 4))


@pytest.mark.parametrize("kwargs", [{"batch_size": 0}, {"num_workers": 0}])
def test_invalid_options(samples, kwargs):
    with pytest.raises(InvalidParameter):
        project_radiance_to_coefficients(samples, sky_radiance, **kwargs)
