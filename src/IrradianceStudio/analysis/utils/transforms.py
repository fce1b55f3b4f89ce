import math

import torch
from einops import repeat


def luminance(batch_rgb: torch.Tensor) -> torch.Tensor:
    """
    Compute the luminance of an rgb image.

    :param rgb: (..., 3)
    :return: (...)
    """
    # ITU-R BT.709 luminance
    return 0.2126 * batch_rgb[...,0] + 0.7152 * batch_rgb[...,1] + 0.0722 * batch_rgb[...,2]


def generate_spherical_coordinates_map(H:int, W:int, device: torch.device = None) -> torch.Tensor:
    """
    Create map of size (H, W, 2), where at each pixel center we know the theta and phi value.

    Equirectangular layout used throughout:

                            0       +-------------------------------------------+
                                    |+Z        +Z        +Z       +Z          +Z|
                                    |                                           |
    Inclination (theta)     pi/2    |+X        +Y        -X       -Y          +X|
                                    |                                           |
                                    |-Z        -Z        -Z       -Z          -Z|
                            pi      +-------------------------------------------+
                                    0         pi/2       pi      3pi/2        2pi

                                                    Azimuthal (phi)

    :params H: height
    :params W: width

    :return spherical_coordinates: (H, W, 2) float64, [..., 0] = theta, [..., 1] = phi
    """
    theta_s = (torch.arange(H, device=device, dtype=torch.float64) + 0.5) / H * math.pi          # (H)
    phi_s = (torch.arange(W, device=device, dtype=torch.float64) + 0.5) / W * (2.0 * math.pi)    # (W)

    theta_map = repeat(theta_s, "h -> h w", w=W)     # (H, W)
    phi_map = repeat(phi_s, "w -> h w", h=H)         # (H, W)

    return torch.stack([theta_map, phi_map], dim=-1)  # (H, W, 2)


def spherical_to_cartesian(spherical_coordinates: torch.Tensor) -> torch.Tensor:
    """
    Convert from spherical coordinates to unit cartesian directions.

    :params spherical_coordinates (..., 2): theta inclination from +z, phi azimuth from +x toward +y.
    :returns cartesian_coordinates (..., 3): (sin theta cos phi, sin theta sin phi, cos theta)
    """
    theta, phi = spherical_coordinates[..., 0], spherical_coordinates[..., 1]
    sin_theta = torch.sin(theta)

    x = sin_theta * torch.cos(phi)
    y = sin_theta * torch.sin(phi)
    z = torch.cos(theta)

    return torch.stack([x, y, z], dim=-1)


def spherical_to_pixel(spherical_coordinates: torch.Tensor, H:int, W:int) -> torch.Tensor:
    """
    Nearest texel of an equirectangular image for each direction.
    Undo the mapping from generate_spherical_coordinates_map.

    :params spherical_coordinates (..., 2)
    :returns pixel_coordinates (..., 2) int64 as (row, column); rows clamp at the poles, columns wrap.
    """
    theta, phi = spherical_coordinates[..., 0], spherical_coordinates[..., 1]

    row = torch.clamp(torch.floor(theta / math.pi * H), 0, H - 1).to(torch.int64)
    column = torch.remainder(torch.floor(phi / (2.0 * math.pi) * W), W).to(torch.int64)

    return torch.stack([row, column], dim=-1)
