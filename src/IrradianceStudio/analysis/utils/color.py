"""
sRGB <-> linear RGB conversion.

Colors are tensors (..., 3) or (..., 4). The fourth channel is alpha and is
passed through unchanged. Only the conversions listed in
``SUPPORTED_CONVERSIONS`` exist; anything else raises UnsupportedConversion.
"""

import logging
from enum import Enum
from typing import Callable, Dict, Tuple

import torch

from IrradianceStudio.analysis.exceptions import InvalidParameter, UnsupportedConversion

logger = logging.getLogger(__name__)

SRGB_GAMMA = 2.4
SRGB_TO_LINEAR_THRESHOLD = 0.04045
LINEAR_TO_SRGB_THRESHOLD = 0.0031308


class ColorSpace(Enum):
    SRGB = "srgb"
    LINEAR = "linear"
    XYZ = "xyz"  # declared so callers can tag data, no conversion exists yet


def _split_alpha(color: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
    if color.shape[-1] not in (3, 4):
        raise InvalidParameter(f'color must have 3 or 4 channels, got shape {tuple(color.shape)}')
    return color[..., :3], color[..., 3:]


def srgb_to_linear(color: torch.Tensor) -> torch.Tensor:
    """
    :params color: (..., 3) or (..., 4) sRGB encoded values
    :returns: same shape, linear RGB (alpha untouched)
    """
    rgb, alpha = _split_alpha(color)
    linear = torch.where(rgb > SRGB_TO_LINEAR_THRESHOLD,
                         torch.pow((torch.clamp(rgb, min=0.0) + 0.055) / 1.055, SRGB_GAMMA),
                         rgb / 12.92)
    return torch.cat([linear, alpha], dim=-1)


def linear_to_srgb(color: torch.Tensor) -> torch.Tensor:
    """
    :params color: (..., 3) or (..., 4) linear RGB values
    :returns: same shape, sRGB encoded (alpha untouched)
    """
    rgb, alpha = _split_alpha(color)
    srgb = torch.where(rgb > LINEAR_TO_SRGB_THRESHOLD,
                       1.055 * torch.pow(torch.clamp(rgb, min=0.0), 1.0 / SRGB_GAMMA) - 0.055,
                       12.92 * rgb)
    return torch.cat([srgb, alpha], dim=-1)


SUPPORTED_CONVERSIONS: Dict[Tuple[ColorSpace, ColorSpace], Callable[[torch.Tensor], torch.Tensor]] = {
    (ColorSpace.SRGB, ColorSpace.LINEAR): srgb_to_linear,
    (ColorSpace.LINEAR, ColorSpace.SRGB): linear_to_srgb,
}


def change_color_space(color: torch.Tensor, source: ColorSpace, target: ColorSpace) -> torch.Tensor:
    """
    Convert color from source to target color space.

    Same-space requests return a copy. Pairs missing from SUPPORTED_CONVERSIONS
    raise UnsupportedConversion instead of passing the value through.
    """
    if source == target:
        return color.clone()

    convert = SUPPORTED_CONVERSIONS.get((source, target))
    if convert is None:
        raise UnsupportedConversion(f'conversion from {source.value} to {target.value} is not supported')

    logger.debug(f"Converting color {tuple(color.shape)} from {source.value} to {target.value}")
    return convert(color)
