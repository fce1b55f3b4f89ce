"""
Radiance sources for projection.

A radiance source is any callable ``radiance(theta, phi) -> rgb`` taking
(n,) float64 tensors of inclination and azimuth and returning (n, 3) linear
RGB (a (3,) result is broadcast to every sample).
"""

import logging
from typing import Callable, Dict, Sequence, Union

import torch

from IrradianceStudio.analysis.exceptions import InvalidParameter
from IrradianceStudio.analysis.utils.color import ColorSpace, change_color_space
from IrradianceStudio.analysis.utils.transforms import spherical_to_pixel

logger = logging.getLogger(__name__)

RadianceFn = Callable[[torch.Tensor, torch.Tensor], torch.Tensor]


def evaluate_radiance(radiance_fn: RadianceFn, theta: torch.Tensor, phi: torch.Tensor) -> torch.Tensor:
    """
    Call a radiance source on a batch and check the result.

    :returns rgb: (n, 3) float64 on theta's device
    """
    n = theta.shape[0]
    rgb = torch.as_tensor(radiance_fn(theta, phi), dtype=torch.float64, device=theta.device)
    if rgb.shape == (3,):
        rgb = rgb.expand(n, 3)
    if rgb.shape != (n, 3):
        raise InvalidParameter(f'radiance source returned shape {tuple(rgb.shape)}, expected ({n}, 3) or (3,)')
    return rgb


class ConstantRadiance:
    """The same linear rgb in every direction."""

    def __init__(self, rgb: Union[Sequence[float], torch.Tensor]):
        self.rgb = torch.as_tensor(rgb, dtype=torch.float64)
        if self.rgb.shape != (3,):
            raise InvalidParameter(f'rgb must have 3 channels, got shape {tuple(self.rgb.shape)}')

    def __call__(self, theta: torch.Tensor, phi: torch.Tensor) -> torch.Tensor:
        return self.rgb.to(theta.device).expand(theta.shape[0], 3)


class EquirectangularRadiance:
    """
    Nearest texel lookup into an equirectangular environment map.

    Rows span theta in [0, pi] top to bottom, columns span phi in [0, 2pi)
    left to right. An sRGB tagged image is linearized once here, so what
    reaches the projector is always linear.

    :params image: (H, W, 3) or (H, W, 4) float tensor, alpha is dropped
    :params color_space: color space of the image values
    """

    def __init__(self, image: torch.Tensor, color_space: ColorSpace = ColorSpace.LINEAR):
        if image.dim() != 3 or image.shape[-1] not in (3, 4):
            raise InvalidParameter(f'image must be (H, W, 3|4), got shape {tuple(image.shape)}')
        linear = change_color_space(image.to(torch.float64), color_space, ColorSpace.LINEAR)
        self.image = linear[..., :3].contiguous()
        self.height, self.width = self.image.shape[0], self.image.shape[1]
        self._device_images: Dict[torch.device, torch.Tensor] = {self.image.device: self.image}
        logger.debug(f"Equirectangular radiance source {self.height}x{self.width} ({color_space.value})")

    def image_on(self, device: torch.device) -> torch.Tensor:
        """The linear image on device, copied there once and reused for later batches."""
        device = torch.device(device)
        image = self._device_images.get(device)
        if image is None:
            image = self.image.to(device)
            self._device_images[device] = image
        return image

    def __call__(self, theta: torch.Tensor, phi: torch.Tensor) -> torch.Tensor:
        pixels = spherical_to_pixel(torch.stack([theta, phi], dim=-1), self.height, self.width)
        image = self.image_on(theta.device)
        return image[pixels[..., 0], pixels[..., 1]]


class PointwiseRadiance:
    """
    Adapts a scalar callback ``fn(theta: float, phi: float) -> (r, g, b)``
    to the batched radiance signature. Slow, one Python call per sample.
    """

    def __init__(self, fn: Callable[[float, float], Sequence[float]]):
        self.fn = fn

    def __call__(self, theta: torch.Tensor, phi: torch.Tensor) -> torch.Tensor:
        values = [self.fn(t, p) for t, p in zip(theta.tolist(), phi.tolist())]
        return torch.as_tensor(values, dtype=torch.float64, device=theta.device).reshape(-1, 3)
