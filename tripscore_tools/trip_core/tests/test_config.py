import json

import pytest
from tripscore_tools.trip_core.config import (
    DEFAULT_SPEEDING,
    TripScoreConfig,
    load_config,
)


class TestDefaults:
    def test_policy_tables(self):
        cfg = TripScoreConfig()
        c = cfg.classifier
        assert (c.acceleration_mps2.minor, c.acceleration_mps2.mid, c.acceleration_mps2.major) == (2.5, 3.5, 5.0)
        assert (c.braking_mps2.minor, c.braking_mps2.mid, c.braking_mps2.major) == (-1.5, -2.5, -3.5)
        assert (c.cornering_mps2.minor, c.cornering_mps2.mid, c.cornering_mps2.major) == (0.7, 1.3, 3.0)
        assert c.speeding_kmh == DEFAULT_SPEEDING
        assert cfg.segmentation.end_low_speed_duration_ms == 300_000
        assert cfg.scoring.night_factor == 1.2
        assert cfg.fingerprint.grid_deg == 0.001

    def test_defaults_validate(self):
        TripScoreConfig().validate()

    def test_instances_do_not_share_tables(self):
        a, b = TripScoreConfig(), TripScoreConfig()
        a.classifier.braking_mps2.minor = -1.0
        assert b.classifier.braking_mps2.minor == -1.5


class TestFromDict:
    def test_nested_override(self):
        cfg = TripScoreConfig.from_dict({"scoring": {"night_factor": 1.5},
                                         "classifier": {"timezone": "UTC"}})
        assert cfg.scoring.night_factor == 1.5
        assert cfg.classifier.timezone == "UTC"
        assert cfg.scoring.minor_weight == 10.0

    def test_threshold_list(self):
        cfg = TripScoreConfig.from_dict({"classifier": {"speeding_kmh": [110, 115, 120]}})
        assert cfg.classifier.speeding_kmh.major == 120

    def test_partial_threshold_mapping(self):
        cfg = TripScoreConfig.from_dict({"classifier": {"cornering_mps2": {"minor": 0.9}}})
        assert cfg.classifier.cornering_mps2.minor == 0.9
        assert cfg.classifier.cornering_mps2.mid == 1.3

    def test_empty(self):
        assert TripScoreConfig.from_dict({}) == TripScoreConfig()
        assert TripScoreConfig.from_dict(None) == TripScoreConfig()

    @pytest.mark.parametrize("data", [
        {"scorng": {}},
        {"scoring": {"night_bonus": 2}},
        {"classifier": {"braking_mps2": [-1.5, -2.5]}},
        {"classifier": {"braking_mps2": 3}},
    ])
    def test_bad_keys_rejected(self, data):
        with pytest.raises(ValueError):
            TripScoreConfig.from_dict(data)

    @pytest.mark.parametrize("data", [
        {"classifier": {"acceleration_mps2": [5.0, 3.5, 2.5]}},
        {"classifier": {"braking_mps2": [-3.5, -2.5, -1.5]}},
        {"segmentation": {"low_speed_mps": 3.0}},
        {"filter": {"alpha_speed": 0.0}},
        {"filter": {"alpha_bearing": 1.5}},
    ])
    def test_invalid_values_rejected(self, data):
        with pytest.raises(ValueError):
            TripScoreConfig.from_dict(data)


class TestLoadConfig:
    def test_load_json(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"scoring": {"min_distance_km": 1.0}}))
        cfg = load_config(str(path))
        assert cfg.scoring.min_distance_km == 1.0

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"fingerprint": {"tile": 1}}))
        with pytest.raises(ValueError, match="fingerprint.tile"):
            load_config(str(path))
