"""Tests for configuration loading."""

import logging

import pytest

from rasterconv.config import (
    CONFIG_ENV,
    CONFIG_NAME,
    ConverterConfig,
    configure_logging,
    load_config,
)


class TestLoadConfig:
    """Test rasterconv.toml resolution and validation."""

    def test_defaults_without_file(self) -> None:
        config = load_config()
        assert config == ConverterConfig()
        assert config.compression == "rle"
        assert config.buffer_size == 65536
        assert config.log_level == "WARNING"

    def test_explicit_path(self, tmp_path) -> None:
        path = tmp_path / "custom.toml"
        path.write_text(
            '[conversion]\ncompression = "Huffman"\nbuffer_size = 4096\n'
            '[logging]\nlevel = "debug"\n'
        )
        config = load_config(str(path))
        assert config.compression == "huffman"
        assert config.buffer_size == 4096
        assert config.log_level == "DEBUG"

    def test_working_directory_file(self, tmp_path) -> None:
        (tmp_path / CONFIG_NAME).write_text('[conversion]\ncompression = "auto"\n')
        assert load_config().compression == "auto"

    def test_env_overrides_explicit_path(self, tmp_path, monkeypatch) -> None:
        env_file = tmp_path / "env.toml"
        env_file.write_text('[conversion]\ncompression = "uncompressed"\n')
        other = tmp_path / "other.toml"
        other.write_text('[conversion]\ncompression = "huffman"\n')
        monkeypatch.setenv(CONFIG_ENV, str(env_file))
        assert load_config(str(other)).compression == "uncompressed"

    def test_missing_explicit_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(str(tmp_path / "missing.toml"))

    def test_invalid_compression(self, tmp_path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text('[conversion]\ncompression = "lzw"\n')
        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(str(path))

    def test_invalid_buffer_size(self, tmp_path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text("[conversion]\nbuffer_size = 0\n")
        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(str(path))

    def test_invalid_log_level(self, tmp_path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text('[logging]\nlevel = "LOUD"\n')
        with pytest.raises(ValueError, match="Unsupported log level"):
            load_config(str(path))


class TestConfigureLogging:
    """Test applying the configured level."""

    def test_sets_package_level(self) -> None:
        logger = logging.getLogger("rasterconv")
        previous = logger.level
        try:
            configure_logging("DEBUG")
            assert logger.level == logging.DEBUG
            assert logging.getLogger("rasterconv.api").getEffectiveLevel() == logging.DEBUG
        finally:
            logger.setLevel(previous)
