"""
Unit tests for configuration loading.
"""

import os

import pytest
from crawl import ConfigError, CrawlConfig, load_config
from crawl import config as config_module


@pytest.fixture(autouse=True)
def clean_environment(tmp_path, monkeypatch):
    """No CRAWL_* variables and no user config file."""
    monkeypatch.delenv("CRAWL_CONFIG", raising=False)
    monkeypatch.delenv("CRAWL_TABLE_PATH", raising=False)
    monkeypatch.setattr(config_module, "USER_CONFIG_PATH", tmp_path / "missing.yaml")


def write_config(tmp_path, text: str):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestLoadConfig:
    """Test where configuration comes from."""

    def test_defaults(self):
        config = load_config()
        assert config == CrawlConfig()
        assert config.max_call_depth == 64
        assert config.table_paths == []
        assert config.seed is None
        assert config.log_level == "WARNING"

    def test_explicit_file(self, tmp_path):
        path = write_config(tmp_path, (
            "max_call_depth: 10\n"
            "table_paths:\n"
            "  - /games/tables\n"
            "clamp_to_min: true\n"
            "seed: 1234\n"
            "strict: true\n"
            "log_level: info\n"
        ))
        config = load_config(path)
        assert config.max_call_depth == 10
        assert config.table_paths == ["/games/tables"]
        assert config.clamp_to_min is True
        assert config.seed == 1234
        assert config.strict is True
        assert config.log_level == "INFO"
        assert config.source_path == str(path)

    def test_environment_file(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, "seed: 7\n")
        monkeypatch.setenv("CRAWL_CONFIG", str(path))
        assert load_config().seed == 7

    def test_user_file(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, "seed: 9\n")
        monkeypatch.setattr(config_module, "USER_CONFIG_PATH", path)
        assert load_config().seed == 9

    def test_explicit_file_wins(self, tmp_path, monkeypatch):
        env_path = tmp_path / "env.yaml"
        env_path.write_text("seed: 1\n")
        monkeypatch.setenv("CRAWL_CONFIG", str(env_path))
        path = write_config(tmp_path, "seed: 2\n")
        assert load_config(path).seed == 2

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "nope.yaml")
        assert "not found" in str(exc_info.value)

    def test_missing_environment_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CRAWL_CONFIG", str(tmp_path / "nope.yaml"))
        with pytest.raises(ConfigError):
            load_config()

    def test_empty_file(self, tmp_path):
        assert load_config(write_config(tmp_path, "")) == CrawlConfig()

    def test_table_path_environment(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, "table_paths: [/c]\n")
        monkeypatch.setenv("CRAWL_TABLE_PATH", os.pathsep.join(["/a", "/b"]))
        assert load_config(path).table_paths == ["/a", "/b", "/c"]

    def test_single_table_path(self, tmp_path):
        path = write_config(tmp_path, "table_paths: /games/tables\n")
        assert load_config(path).table_paths == ["/games/tables"]


class TestInvalidConfig:
    """Bad files and values raise ConfigError."""

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_config(write_config(tmp_path, "a: [1, 2\n"))
        assert "Invalid YAML" in str(exc_info.value)

    def test_non_mapping_root(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(write_config(tmp_path, "- 1\n- 2\n"))

    def test_unknown_key(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_config(write_config(tmp_path, "colour: blue\n"))
        assert "colour" in str(exc_info.value)

    @pytest.mark.parametrize("text", [
        "max_call_depth: ten\n",
        "max_call_depth: 0\n",
        "max_call_depth: true\n",
        "clamp_to_min: yes please\n",
        "strict: 1\n",
        "seed: abc\n",
        "log_level: LOUD\n",
        "table_paths: [1, 2]\n",
    ])
    def test_bad_values(self, tmp_path, text):
        with pytest.raises(ConfigError):
            load_config(write_config(tmp_path, text))

    def test_from_dict_source_in_message(self):
        with pytest.raises(ConfigError) as exc_info:
            CrawlConfig.from_dict({"seed": "x"}, "test.yaml")
        assert "test.yaml" in str(exc_info.value)
