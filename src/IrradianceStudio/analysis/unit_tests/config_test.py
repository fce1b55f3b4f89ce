import pytest
import torch

from IrradianceStudio.analysis.config import SHLightingConfig
from IrradianceStudio.analysis.core.projection import DEFAULT_BATCH_SIZE
from IrradianceStudio.analysis.exceptions import InvalidParameter


def test_defaults():
    config = SHLightingConfig()
    assert config.n_bands == 3
    assert config.samples_per_axis == 100
    assert config.seed is None
    assert config.batch_size == DEFAULT_BATCH_SIZE
    assert config.num_workers == 1
    assert config.log_level == "INFO"


def test_auto_device_is_resolved():
    config = SHLightingConfig(device="auto")
    assert config.device == ("cuda" if torch.cuda.is_available() else "cpu")


def test_log_level_is_normalized():
    assert SHLightingConfig(log_level="debug").log_level == "DEBUG"


@pytest.mark.parametrize("kwargs", [
    {"n_bands": 0},
    {"samples_per_axis": 0},
    {"batch_size": 0},
    {"num_workers": 0},
    {"log_level": "LOUD"},
])
def test_invalid_values(kwargs):
    with pytest.raises(InvalidParameter):
        SHLightingConfig(**kwargs)


def test_dict_round_trip():
    config = SHLightingConfig(n_bands=4, samples_per_axis=20, seed=5, device="cpu")
    assert SHLightingConfig.from_dict(config.to_dict()) == config


def test_unknown_keys():
    with pytest.raises(InvalidParameter, match="bands"):
        SHLightingConfig.from_dict({"bands": 3})
