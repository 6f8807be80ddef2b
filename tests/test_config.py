"""Tests for codec configuration loading and validation."""

import pytest

from pqcodec import CodecConfig, CodecContext, load_codec_config
from pqcodec.exceptions import ConfigurationError
from pqcodec.utils import format_time, load_config


class TestCodecConfig:

    def test_defaults(self):
        config = CodecConfig()
        assert config.n == 2
        assert config.metric == "l2"
        assert config.bayesian is False
        assert config.parallelism is False
        assert (config.niter, config.nredo) == (10, 3)
        assert config.sample_size == 256

    def test_shipped_config_matches_defaults(self, default_config_path):
        assert load_codec_config(str(default_config_path)) == CodecConfig()

    def test_from_dict_flattens_calibration(self):
        config = CodecConfig.from_dict({"n": 4, "bayesian": True,
                                        "calibration": {"sample_size": 64, "max_log_ratio": 10.0}})
        assert config.n == 4
        assert config.sample_size == 64
        assert config.max_log_ratio == 10.0

    @pytest.mark.parametrize("name,expected", [("L2", "l2"), ("Cosine", "cosine"), ("L1", "l1")])
    def test_metric_name_case_insensitive(self, name, expected):
        config = CodecConfig.from_dict({"metric": name})
        assert config.metric == expected
        with CodecContext(config) as ctx:
            assert ctx.create_codec().metric.name == expected

    @pytest.mark.parametrize("options", [
        {"n": 0},
        {"metric": "hamming"},
        {"niter": 0},
        {"max_workers": 0},
        {"calibration": {"sample_size": 1}},
        {"unknown": 1},
    ])
    def test_invalid_options(self, options):
        with pytest.raises(ConfigurationError):
            CodecConfig.from_dict(options)

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "codec.yaml"
        path.write_text("codec:\n  n: 4\n  metric: l1\n  parallelism: true\n", encoding="utf-8")

        with CodecContext.from_config_file(str(path)) as ctx:
            assert ctx.config.n == 4
            assert ctx.config.metric == "l1"
            assert ctx.parallelism is True

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("codec: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="format error"):
            load_codec_config(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))


class TestUtils:

    @pytest.mark.parametrize("seconds,expected", [
        (1.5, "1.50s"),
        (61, "1m 1.00s"),
        (3723, "1h 2m 3.00s"),
    ])
    def test_format_time(self, seconds, expected):
        assert format_time(seconds) == expected
