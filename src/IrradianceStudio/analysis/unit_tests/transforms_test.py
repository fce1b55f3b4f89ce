import math

import torch

from IrradianceStudio.analysis.utils.transforms import (
    generate_spherical_coordinates_map,
    luminance,
    spherical_to_cartesian,
    spherical_to_pixel,
)


def test_coordinates_map_pixel_centers():
    H, W = 4, 8
    spherical_coordinates = generate_spherical_coordinates_map(H, W)
    assert spherical_coordinates.shape == (H, W, 2)
    assert spherical_coordinates[0, 0, 0].item() == math.pi / 8
    assert spherical_coordinates[0, 0, 1].item() == math.pi / 8
    assert torch.all(spherical_coordinates[:, 3, 0] == spherical_coordinates[:, 0, 0])
    assert torch.all(spherical_coordinates[2, :, 1] == spherical_coordinates[0, :, 1])


def test_axes():
    spherical = torch.tensor([[0.0, 0.0], [math.pi / 2, 0.0], [math.pi / 2, math.pi / 2], [math.pi, 0.0]],
                             dtype=torch.float64)
    expected = torch.tensor([[0.0, 0.0, 1.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, -1.0]],
                            dtype=torch.float64)
    assert torch.allclose(spherical_to_cartesian(spherical), expected, atol=1e-12)


def test_pixel_lookup_inverts_map():
    H, W = 6, 12
    pixels = spherical_to_pixel(generate_spherical_coordinates_map(H, W), H, W)
    rows, columns = torch.meshgrid(torch.arange(H), torch.arange(W), indexing="ij")
    assert torch.equal(pixels[..., 0], rows)
    assert torch.equal(pixels[..., 1], columns)


def test_pixel_lookup_edges():
    spherical = torch.tensor([[math.pi, 2.0 * math.pi], [0.0, -0.01]], dtype=torch.float64)
    pixels = spherical_to_pixel(spherical, 4, 8)
    assert pixels.tolist() == [[3, 0], [0, 7]]


def test_luminance():
    rgb = torch.tensor([[1.0, 1.0, 1.0], [1.0, 0.0, 0.0]])
    assert torch.allclose(luminance(rgb), torch.tensor([1.0, 0.2126]))
