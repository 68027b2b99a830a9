"""
QDX Reader Configuration
========================

Scanner options, optionally loaded from a JSON file:

{
    "loyalty_card_required": true,
    "debug": false,
    "enable_coupons": false,
    "delimiter": "|",
    "output_dir": null
}

``raw_record_hook`` is a callable and can only be set in code.
"""

import json
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from qdx_reader.fields import TailData

logger = logging.getLogger(__name__)

RawRecordHook = Callable[[bytes, TailData], None]

# Accepted JSON types per key; raw_record_hook is code-only
OPTION_TYPES = {
    'loyalty_card_required': (bool,),
    'debug': (bool,),
    'enable_coupons': (bool,),
    'delimiter': (str,),
    'output_dir': (str, type(None)),
}


@dataclass
class ScannerConfig:
    loyalty_card_required: bool = True
    debug: bool = False
    raw_record_hook: Optional[RawRecordHook] = None
    enable_coupons: bool = False
    delimiter: str = '|'
    output_dir: Optional[str] = None


def load_config(config_path: str = 'config.json') -> ScannerConfig:
    """
    Load scanner configuration from a JSON file.

    Args:
        config_path: Path to configuration file

    Returns:
        ScannerConfig with file values over the defaults

    Raises:
        FileNotFoundError: If config file doesn't exist
        json.JSONDecodeError: If config file is invalid JSON
        ValueError: If the file is not a JSON object or a value has the wrong type
    """
    try:
        logger.info(f"Loading configuration from {config_path}...")
        with open(config_path, 'r') as f:
            raw = json.load(f)
    except FileNotFoundError:
        logger.error(f"✗ Configuration file not found: {config_path}")
        raise
    except json.JSONDecodeError as e:
        logger.error(f"✗ Invalid JSON in configuration file: {e}")
        raise

    if not isinstance(raw, dict):
        logger.error(f"✗ Configuration must be a JSON object, got {type(raw).__name__}")
        raise ValueError(f"{config_path}: expected a JSON object")

    options = {}
    for key, value in raw.items():
        if key not in OPTION_TYPES:
            logger.warning(f"Ignoring unknown configuration key: {key}")
            continue
        if not isinstance(value, OPTION_TYPES[key]):
            logger.error(f"✗ Invalid value for {key}: {value!r}")
            raise ValueError(f"{config_path}: {key} must be "
                             f"{' or '.join(t.__name__ for t in OPTION_TYPES[key])}")
        options[key] = value

    config = ScannerConfig(**options)
    logger.info(f"✓ Configuration loaded successfully")
    logger.info(f"  Loyalty card required: {config.loyalty_card_required}")
    logger.info(f"  Coupons enabled: {config.enable_coupons}")
    logger.info(f"  Debug retention: {config.debug}")
    return config
