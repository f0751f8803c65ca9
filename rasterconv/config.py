"""Converter configuration loaded from ``rasterconv.toml``.

Example file:

    [conversion]
    compression = "huffman"
    buffer_size = 65536

    [logging]
    level = "INFO"
"""

from __future__ import annotations

import logging
import os
from typing import Any, Literal, cast

from pydantic import BaseModel, Field, ValidationError

# TOML loading for Python 3.11+ and older
try:
    import tomllib  # type: ignore[import-not-found, unused-ignore]
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found, no-redef, unused-ignore]

logger = logging.getLogger(__name__)

CONFIG_ENV = "RASTERCONV_CONFIG"
CONFIG_NAME = "rasterconv.toml"

CompressionChoice = Literal["uncompressed", "rle", "huffman", "auto"]


class ConverterConfig(BaseModel):
    """Validated converter settings.

    Attributes:
        compression: Default output compression when none is requested
        buffer_size: Buffer size for sequential file reads and writes
        log_level: Level applied to the ``rasterconv`` logger
    """

    compression: CompressionChoice = "rle"
    buffer_size: int = Field(default=65536, ge=1)
    log_level: str = "WARNING"


def _resolve_config_path(config_path: str | None) -> str | None:
    """Resolve configuration path from env, explicit path, or defaults."""
    env_config = os.environ.get(CONFIG_ENV)
    if env_config:
        return env_config
    if config_path:
        return config_path
    candidates = [
        CONFIG_NAME,
        os.path.expanduser(f"~/{CONFIG_NAME}"),
    ]
    for candidate in candidates:
        if os.path.exists(candidate):
            return candidate
    return None


def load_config(config_path: str | None = None) -> ConverterConfig:
    """Load converter settings.

    Without any config file the defaults apply.

    Raises:
        FileNotFoundError: If an explicitly given (or env) path does not exist
        ValueError: If the file contains unsupported values
    """
    resolved_path = _resolve_config_path(config_path)
    if resolved_path is None:
        return ConverterConfig()
    if not os.path.exists(resolved_path):
        raise FileNotFoundError(
            f"Config file not found at {resolved_path}. Set {CONFIG_ENV} or create {CONFIG_NAME}"
        )
    with open(resolved_path, "rb") as f:
        raw = cast(dict[str, Any], tomllib.load(f))

    conversion = raw.get("conversion", {})
    log_section = raw.get("logging", {})
    values: dict[str, Any] = {}
    if "compression" in conversion:
        values["compression"] = str(conversion["compression"]).strip().lower()
    if "buffer_size" in conversion:
        values["buffer_size"] = conversion["buffer_size"]
    if "level" in log_section:
        values["log_level"] = str(log_section["level"]).upper()

    try:
        config = ConverterConfig(**values)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {resolved_path}: {e}") from e
    if not isinstance(logging.getLevelName(config.log_level), int):
        raise ValueError(f"Unsupported log level in {resolved_path}: {config.log_level!r}")

    logger.debug("Loaded config from %s: %s", resolved_path, config)
    return config


def configure_logging(level: str | int) -> None:
    """Apply ``level`` to the package logger."""
    logging.getLogger("rasterconv").setLevel(level)
