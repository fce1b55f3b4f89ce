import os

os.environ['OPENCV_IO_ENABLE_OPENEXR'] = '1'

import cv2
import numpy as np
import torch

from IrradianceStudio.analysis.utils.color import linear_to_srgb


def read_image(image_path: str) -> torch.Tensor:
    """
    Read an image as float rgb. 8 and 16 bit images are scaled to [0, 1],
    float images (exr, hdr) are returned as stored.

    : return image: (H, W, 3) float32
    """
    image = cv2.imread(str(image_path), cv2.IMREAD_ANYCOLOR | cv2.IMREAD_ANYDEPTH)
    if image is None:
        raise ValueError(f"Could not read image file: {image_path}")
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    image_rgb = cv2.cvtColor(image[..., :3], cv2.COLOR_BGR2RGB)

    if image_rgb.dtype == np.uint8:
        image_rgb = image_rgb.astype(np.float32) / 255.0
    elif image_rgb.dtype == np.uint16:
        image_rgb = image_rgb.astype(np.float32) / 65535.0
    else:
        image_rgb = image_rgb.astype(np.float32)

    return torch.from_numpy(np.ascontiguousarray(image_rgb))


def write_exr(image: torch.Tensor, exr_path: str):
    """
    Write an image to an exr file.

    :param image: (H, W, 3) linear rgb
    :param exr_path: path to write the exr file to
    """
    image_np = image.detach().cpu().numpy().astype(np.float32)
    cv2.imwrite(str(exr_path), cv2.cvtColor(image_np, cv2.COLOR_RGB2BGR))


def write_png(image: torch.Tensor, png_path: str, exposure: float = 0.0):
    """
    Write a linear image as an sRGB encoded 8 bit png for web display.

    :param image: (H, W, 3) linear rgb
    :param png_path: path to write the png file to
    :param exposure: exposure adjustment in stops (default 0.0)
    """
    image = image.detach().to(torch.float64)
    if exposure != 0.0:
        image = image * (2.0 ** exposure)

    # Simple tone mapping: clamp and encode
    image_srgb = linear_to_srgb(torch.clamp(image, 0.0, 1.0))
    image_8bit = (image_srgb.cpu().numpy() * 255.0 + 0.5).astype(np.uint8)

    cv2.imwrite(str(png_path), cv2.cvtColor(image_8bit, cv2.COLOR_RGB2BGR))
