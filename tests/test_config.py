import json

import pytest
from pydantic import ValidationError

import wishlens.config as config_module
from wishlens.config import Config, get_config
from wishlens.net.safety import RetryConfig


class TestConfig:
    def test_defaults(self):
        config = Config(_env_file=None)
        assert config.grid_size == 2
        assert config.max_concurrent == 2
        assert config.jpeg_quality == 70
        assert not config.is_backend_configured

    def test_retry_property(self):
        config = Config(_env_file=None, max_retries=4, retry_base_delay=0.5, retry_max_delay=3.0, request_timeout=10.0)
        assert config.retry == RetryConfig(max_retries=4, base_delay=0.5, max_delay=3.0, timeout=10.0)

    def test_backend_url_trailing_slash_stripped(self):
        config = Config(_env_file=None, backend_url=" https://backend.example.com/ ", anon_key="k")
        assert config.backend_url == "https://backend.example.com"
        assert config.is_backend_configured

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://env.example.com")
        monkeypatch.setenv("WISHLENS_GRID_SIZE", "3")
        config = Config(_env_file=None)
        assert config.backend_url == "https://env.example.com"
        assert config.grid_size == 3

    @pytest.mark.parametrize(
        "overrides",
        [
            {"grid_size": 0},
            {"grid_size": 7},
            {"jpeg_quality": 100},
            {"max_concurrent": 0},
            {"max_retries": -1},
            {"retry_base_delay": 6.0, "retry_max_delay": 5.0},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            Config(_env_file=None, **overrides)


class TestGetConfig:
    def test_settings_file_overrides(self, tmp_path, monkeypatch):
        settings_path = tmp_path / "settings.json"
        settings_path.write_text(json.dumps({"grid_size": 3, "access_token": "ignored"}))
        monkeypatch.setattr(config_module, "SETTINGS_PATH", settings_path)
        monkeypatch.delenv("WISHLENS_ACCESS_TOKEN", raising=False)

        config = get_config()
        assert config.grid_size == 3
        assert config.access_token is None

    def test_broken_settings_file_is_ignored(self, tmp_path, monkeypatch):
        settings_path = tmp_path / "settings.json"
        settings_path.write_text("{not json")
        monkeypatch.setattr(config_module, "SETTINGS_PATH", settings_path)
        assert config_module.load_user_settings() == {}

    def test_save_and_load_round_trip(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config_module, "WISHLENS_DIR", tmp_path)
        monkeypatch.setattr(config_module, "SETTINGS_PATH", tmp_path / "settings.json")
        config_module.save_user_settings({"max_concurrent": 3})
        assert config_module.load_user_settings() == {"max_concurrent": 3}
