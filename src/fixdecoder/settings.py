import copy
import logging
import os

import yaml

# --- Global Configuration ---
CONFIG_FILE = "config/config.yaml"
LOGGER_NAME = __name__.rpartition(".")[0] or "fixdecoder"

DEFAULT_CONFIG = {
    "defaults": {
        "fix_version": "44",
        "terminal_width": 80,
    },
    "logging": {
        "level": "WARNING",
        "file": None,
    },
    "sensitive_tags": {
        1: "Account",
        49: "SenderCompID",
        50: "SenderSubID",
        56: "TargetCompID",
        57: "TargetSubID",
        115: "OnBehalfOfCompID",
        128: "DeliverToCompID",
        448: "PartyID",
        553: "Username",
        554: "Password",
    },
}


def load_config(path=CONFIG_FILE) -> dict:
    """Read the YAML configuration, filling gaps from DEFAULT_CONFIG.

    A missing file yields the defaults; malformed YAML raises yaml.YAMLError
    and a document of the wrong shape raises ValueError.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not path or not os.path.exists(path):
        return config

    with open(path, 'r') as f:
        loaded = yaml.safe_load(f) or {}

    if not isinstance(loaded, dict):
        raise ValueError(f"top level must be a mapping, got {type(loaded).__name__}")

    for section, values in loaded.items():
        if values is None:
            continue
        if section in DEFAULT_CONFIG and not isinstance(values, dict):
            raise ValueError(f"section '{section}' must be a mapping, got {type(values).__name__}")

        if section == "sensitive_tags":
            # Replaces the default list instead of extending it.
            config[section] = _parse_sensitive_tags(values)
        elif section in DEFAULT_CONFIG:
            config[section].update(values)
        else:
            config[section] = values
    return config


def _parse_sensitive_tags(values) -> dict:
    tags = {}
    for tag, name in values.items():
        try:
            tags[int(tag)] = str(name)
        except (TypeError, ValueError):
            raise ValueError(f"sensitive_tags key '{tag}' is not a tag number") from None
    return tags


# --- Logging Setup ---
def setup_logging(level="WARNING", log_file=None):
    """Configure and return the package logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level).upper(), logging.WARNING))
    logger.propagate = False

    if not logger.handlers:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        )
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode='a')
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
