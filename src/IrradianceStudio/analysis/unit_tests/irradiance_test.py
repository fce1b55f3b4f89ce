import math

import pytest
import torch

from IrradianceStudio.analysis.core.irradiance import (
    compute_irradiance_matrices,
    evaluate_irradiance,
    render_irradiance_map,
)
from IrradianceStudio.analysis.core.projection import project_radiance_to_coefficients
from IrradianceStudio.analysis.core.radiance import ConstantRadiance
from IrradianceStudio.analysis.core.sampler import setup_spherical_samples
from IrradianceStudio.analysis.exceptions import InvalidParameter
from IrradianceStudio.analysis.utils.transforms import spherical_to_cartesian

# Ramamoorthi & Hanrahan, Equation 13
C1, C2, C3, C4, C5 = 0.429043, 0.511664, 0.743125, 0.886227, 0.247708


def polynomial_irradiance(L: torch.Tensor, n: torch.Tensor) -> torch.Tensor:
    x, y, z = n[:, 0:1], n[:, 1:2], n[:, 2:3]
    L00, L1m1, L10, L11, L2m2, L2m1, L20, L21, L22 = L
    return (C1 * L22 * (x * x - y * y) + C3 * L20 * z * z + C4 * L00 - C5 * L20
            + 2.0 * C1 * (L2m2 * x * y + L21 * x * z + L2m1 * y * z)
            + 2.0 * C2 * (L11 * x + L1m1 * y + L10 * z))


@pytest.fixture(scope="module")
def samples():
    return setup_spherical_samples(n_bands=3, samples_per_axis=50, seed=0)


def random_normals(n: int, seed: int) -> torch.Tensor:
    generator = torch.Generator().manual_seed(seed)
    normals = torch.randn((n, 3), generator=generator, dtype=torch.float64)
    return normals / torch.linalg.norm(normals, dim=-1, keepdim=True)


def test_matrices_are_symmetric():
    generator = torch.Generator().manual_seed(1)
    coeffs = torch.randn((9, 3), generator=generator, dtype=torch.float64)
    matrices = compute_irradiance_matrices(coeffs)
    assert matrices.shape == (3, 4, 4)
    assert torch.equal(matrices, matrices.transpose(-1, -2))


def test_matches_closed_form_polynomial():
    generator = torch.Generator().manual_seed(2)
    coeffs = torch.randn((9, 3), generator=generator, dtype=torch.float64)
    normals = random_normals(200, seed=3)

    irradiance = evaluate_irradiance(compute_irradiance_matrices(coeffs), normals)
    assert torch.allclose(irradiance, polynomial_irradiance(coeffs, normals), atol=1e-5)


def test_only_first_nine_coefficients_matter():
    generator = torch.Generator().manual_seed(4)
    coeffs = torch.randn((16, 3), generator=generator, dtype=torch.float64)
    assert torch.equal(compute_irradiance_matrices(coeffs), compute_irradiance_matrices(coeffs[:9]))


def test_uniform_white_light_is_isotropic(samples):
    coeffs = project_radiance_to_coefficients(samples, ConstantRadiance([1.0, 1.0, 1.0]))
    irradiance = evaluate_irradiance(compute_irradiance_matrices(coeffs), random_normals(100, seed=5))
    assert torch.max(torch.abs(irradiance - math.pi)).item() < 0.1


@pytest.mark.parametrize("direction", [[0.0, 0.0, 1.0], [1.0, 0.0, 0.0], [0.0, -1.0, 0.0]])
def test_narrow_lobe_lights_facing_normal(samples, direction):
    direction = torch.tensor(direction, dtype=torch.float64)

    def lobe(theta, phi):
        d = spherical_to_cartesian(torch.stack([theta, phi], dim=-1))
        intensity = torch.clamp(d @ direction, min=0.0) ** 32
        return intensity.unsqueeze(-1).expand(-1, 3)

    matrices = compute_irradiance_matrices(project_radiance_to_coefficients(samples, lobe))
    facing, opposite = evaluate_irradiance(matrices, torch.stack([direction, -direction]))
    assert torch.all(facing > opposite)


def test_single_normal():
    coeffs = torch.zeros((9, 3), dtype=torch.float64)
    coeffs[0] = math.sqrt(4.0 * math.pi)
    irradiance = evaluate_irradiance(compute_irradiance_matrices(coeffs), torch.tensor([0.0, 0.0, 1.0]))
    assert irradiance.shape == (3,)
    assert torch.allclose(irradiance, torch.full((3,), math.pi, dtype=torch.float64))


def test_render_irradiance_map():
    coeffs = torch.zeros((9, 3), dtype=torch.float64)
    coeffs[0] = math.sqrt(4.0 * math.pi)
    irradiance_map = render_irradiance_map(compute_irradiance_matrices(coeffs), 8, 16)
    assert irradiance_map.shape == (8, 16, 3)
    assert torch.allclose(irradiance_map, torch.full_like(irradiance_map, math.pi))


def test_too_few_coefficients():
    with pytest.raises(InvalidParameter):
        compute_irradiance_matrices(torch.zeros((4, 3), dtype=torch.float64))


def test_coefficient_count_must_be_square():
    with pytest.raises(InvalidParameter, match="perfect square"):
        compute_irradiance_matrices(torch.zeros((10, 3), dtype=torch.float64))


def test_bad_coefficient_shape():
    with pytest.raises(InvalidParameter):
        compute_irradiance_matrices(torch.zeros((9, 4), dtype=torch.float64))


def test_bad_normals_shape():
    matrices = compute_irradiance_matrices(torch.zeros((9, 3), dtype=torch.float64))
    with pytest.raises(InvalidParameter):
        evaluate_irradiance(matrices, torch.zeros((5, 2)))
