import numpy as np
import pytest
import torch

from IrradianceStudio.analysis.utils.io import read_image, write_png


def test_png_round_trip(tmp_path):
    image = torch.zeros((4, 8, 3), dtype=torch.float64)
    image[..., 0] = 1.0
    image[:, 4:, 2] = 1.0
    path = tmp_path / "image.png"

    write_png(image, path)
    loaded = read_image(path)

    assert loaded.shape == (4, 8, 3)
    assert loaded.dtype == torch.float32
    assert np.allclose(loaded.numpy(), image.numpy(), atol=1 / 255)


def test_png_exposure_clamps(tmp_path):
    path = tmp_path / "bright.png"
    write_png(torch.full((2, 2, 3), 0.3, dtype=torch.float64), path, exposure=4.0)
    assert torch.all(read_image(path) == 1.0)


def test_missing_image(tmp_path):
    with pytest.raises(ValueError):
        read_image(tmp_path / "missing.exr")
