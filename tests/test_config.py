import pytest

from config import AnalyzerConfig
from models import Carrier


def test_defaults():
    config = AnalyzerConfig()
    assert config.batch_size == 100
    assert config.dim_factor == 139
    assert config.carrier == Carrier.UPS_GROUND
    assert config.as_dict()["carrier"] == "ups_ground"


def test_from_env_mapping():
    config = AnalyzerConfig.from_env(
        {
            "PACKOPT_BATCH_SIZE": "25",
            "PACKOPT_ALLOW_ROTATION": "no",
            "PACKOPT_DIM_FACTOR": "166",
            "PACKOPT_CARRIER": "FEDEX_GROUND",
            "PACKOPT_MONTHLY_VOLUME": "5000",
            "PACKOPT_FRAGILE_HANDLING": "Separate",
            "PACKOPT_PACKING_ALGORITHM": "First_Fit",
            "PACKOPT_STORAGE_DAYS": " ",
        }
    )
    assert config.batch_size == 25
    assert config.allow_rotation is False
    assert config.dim_factor == 166
    assert config.carrier == Carrier.FEDEX_GROUND
    assert config.monthly_volume == 5000
    assert config.fragile_handling == "separate"
    assert config.packing_algorithm == "first_fit"
    assert config.storage_days == 1.0


def test_from_process_environment(monkeypatch):
    monkeypatch.setenv("PACKOPT_IMPLEMENTATION_COST", "2500")
    assert AnalyzerConfig.from_env().implementation_cost == 2500


@pytest.mark.parametrize(
    "env, message",
    [
        ({"PACKOPT_BATCH_SIZE": "lots"}, "must be an integer"),
        ({"PACKOPT_ALLOW_STACKING": "maybe"}, "must be a boolean"),
        ({"PACKOPT_CARRIER": "pigeon"}, "Unknown carrier"),
        ({"PACKOPT_DIM_FACTOR": "0"}, "dim_factor"),
        ({"PACKOPT_FRAGILE_HANDLING": "bubble"}, "fragile_handling"),
        ({"PACKOPT_PACKING_ALGORITHM": "annealing"}, "packing_algorithm"),
    ],
)
def test_invalid_values_raise(env, message):
    with pytest.raises(ValueError, match=message):
        AnalyzerConfig.from_env(env)


def test_packing_constraints_follow_config():
    constraints = AnalyzerConfig(allow_stacking=False, max_stack_height=12).packing_constraints()
    assert constraints.allow_stacking is False
    assert constraints.allow_rotation is True
    assert constraints.max_stack_height == 12
