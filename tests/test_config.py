"""
Smoke tests for configuration loading and validation.
"""

import pytest

from inference import create_recognizer_from_config
from main import load_config, validate_config
from models.config import AnalyticsConfig, Config, RecognizerConfig, RegionPolicy
from models.errors import ConfigInvalid


class TestAnalyticsConfig:
    def test_from_dict_valid(self, analytics_options):
        cfg = AnalyticsConfig.from_dict(analytics_options)
        assert cfg.motion_threshold == 0.3
        assert cfg.region_policy is RegionPolicy.UNION
        assert cfg.frame_width is None

    def test_region_policy_is_case_insensitive(self, analytics_options):
        analytics_options["region_policy"] = "per_region"
        assert AnalyticsConfig.from_dict(analytics_options).region_policy is RegionPolicy.PER_REGION

    @pytest.mark.parametrize("key", [
        "motion_threshold",
        "motion_cooldown_frames",
        "anpr_min_confidence",
        "track_grace_frames",
        "frame_buffer_capacity",
        "region_policy",
    ])
    def test_missing_required_key(self, analytics_options, key):
        del analytics_options[key]
        with pytest.raises(ConfigInvalid) as exc:
            AnalyticsConfig.from_dict(analytics_options)
        assert key in str(exc.value)

    @pytest.mark.parametrize("key,value", [
        ("motion_threshold", 1.5),
        ("motion_threshold", -0.1),
        ("motion_cooldown_frames", -1),
        ("anpr_min_confidence", 2),
        ("track_grace_frames", 1.5),
        ("frame_buffer_capacity", 0),
        ("region_policy", "ALL"),
        ("motion_sensitivity", 1.1),
        ("motion_learning_rate", 0.0),
        ("motion_blur_kernel", 4),
        ("pixel_format", "rgba"),
        ("frame_width", 640),
    ])
    def test_out_of_range_values(self, analytics_options, key, value):
        analytics_options[key] = value
        with pytest.raises(ConfigInvalid):
            AnalyticsConfig.from_dict(analytics_options)

    def test_bool_is_not_a_number(self, analytics_options):
        analytics_options["motion_cooldown_frames"] = True
        with pytest.raises(ConfigInvalid):
            AnalyticsConfig.from_dict(analytics_options)

    def test_to_dict_round_trip(self, analytics_options):
        analytics_options.update(frame_width=320, frame_height=240)
        cfg = AnalyticsConfig.from_dict(analytics_options)
        again = AnalyticsConfig.from_dict(cfg.to_dict())
        assert again == cfg


class TestConfig:
    def test_from_dict(self, valid_config):
        cfg = Config.from_dict(valid_config)
        assert cfg.recognizer.model == "models/plate.pt"
        assert cfg.workers.anpr_pool_size == 2
        assert cfg.workers.threaded_streams is False
        assert cfg.log_level == "INFO"


class TestValidateConfig:
    def test_valid_config_passes(self, valid_config):
        is_valid, error = validate_config(valid_config)

        assert is_valid is True
        assert error is None

    @pytest.mark.parametrize("section", ["analytics", "recognizer", "workers", "log_path", "log_level"])
    def test_missing_section(self, valid_config, section):
        del valid_config[section]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert section in error

    def test_missing_analytics_key(self, valid_config):
        del valid_config["analytics"]["track_grace_frames"]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "track_grace_frames" in error

    def test_out_of_range_analytics_value(self, valid_config):
        valid_config["analytics"]["motion_threshold"] = 3

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "motion_threshold" in error

    def test_missing_model(self, valid_config):
        valid_config["recognizer"]["model"] = ""

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "recognizer.model" in error

    def test_invalid_pool_size(self, valid_config):
        valid_config["workers"]["anpr_pool_size"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "anpr_pool_size" in error

    def test_invalid_log_level(self, valid_config):
        valid_config["log_level"] = "VERBOSE"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "log_level" in error


class TestLoadConfig:
    def test_layering(self, tmp_path):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "default.yaml").write_text(
            "analytics:\n"
            "  motion_threshold: 0.02\n"
            "  track_grace_frames: 10\n"
            "log_level: INFO\n"
        )
        (config_dir / "config.yaml").write_text(
            "analytics:\n"
            "  motion_threshold: 0.05\n"
        )
        explicit = config_dir / "site.yaml"
        explicit.write_text("log_level: DEBUG\n")

        cfg = load_config(str(explicit))

        assert cfg["analytics"]["motion_threshold"] == 0.05
        assert cfg["analytics"]["track_grace_frames"] == 10
        assert cfg["log_level"] == "DEBUG"


class TestRecognizerFactory:
    def test_unknown_backend(self):
        with pytest.raises(ConfigInvalid):
            create_recognizer_from_config(RecognizerConfig(backend="tesseract", model="x.pt"))

    def test_missing_model(self):
        with pytest.raises(ConfigInvalid):
            create_recognizer_from_config(RecognizerConfig(model=""))


class TestLoadConfigLayers:
    def test_missing_layers_are_skipped(self, tmp_path):
        (tmp_path / "default.yaml").write_text("log_level: INFO\n")

        cfg = load_config(str(tmp_path / "config.yaml"))

        assert cfg == {"log_level": "INFO"}
