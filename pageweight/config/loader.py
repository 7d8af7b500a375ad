from __future__ import annotations

import json
import logging

from result import Err, Ok, Result

from pageweight.config.defaults import default_config
from pageweight.config.schema import AppConfig, from_dict
from pageweight.services.fs import DEFAULT_FS, FileSystem
from pageweight.services.logs import LOGGER_NAME

CONFIG_PATH = "~/.config/pageweight/config.json"

logger = logging.getLogger(f"{LOGGER_NAME}.config")


def load_config(path: str | None = None, fs: FileSystem = DEFAULT_FS) -> Result[AppConfig, str]:
    """Read the user config, falling back to defaults when there is none.

    Unset keys keep their defaults and out-of-range numbers are clamped, so
    only unreadable files and malformed JSON come back as ``Err``.
    """
    resolved = fs.expanduser(path or CONFIG_PATH)
    if not fs.exists(resolved):
        logger.debug("No config at %s, using defaults", resolved)
        return Ok(default_config())

    try:
        payload = json.loads(fs.read_text(resolved))
    except (OSError, ValueError) as exc:
        return Err(f"Failed reading config at {resolved}: {exc}.")
    if not isinstance(payload, dict):
        return Err(f"Config at {resolved} must be a JSON object.")

    try:
        config = from_dict(payload, default_config())
    except (TypeError, ValueError, KeyError) as exc:
        return Err(f"Invalid config at {resolved}: {exc}.")
    logger.debug("Loaded config from %s", resolved)
    return Ok(config)


def sample_config_json() -> str:
    return json.dumps(default_config().to_dict(), indent=2)
