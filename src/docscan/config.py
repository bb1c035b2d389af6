"""
Configuration loading.

Settings live in config/scanner_config.yaml. A missing or partial file is
fine: every section is deep-merged over the built-in defaults below, then
validated into the pydantic config models by the components that use it.
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger

from docscan.exceptions import InvalidInputError
from docscan.models import DetectionConfig, PerspectiveConfig, SmoothingConfig

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "config" / "scanner_config.yaml"


def default_config() -> Dict[str, Any]:
    """Return default configuration"""
    return {
        'detection': DetectionConfig().model_dump(),
        'smoothing': SmoothingConfig().model_dump(),
        'perspective': PerspectiveConfig().model_dump(mode='json'),
        'enhancement': {
            'auto_enhance': False,
            'default_preset': 'original',
        },
        'scanner': {
            'fallback_to_full_image': True,
            'thumbnail_size': 200,
            'ocr_languages': ['eng'],
        },
        'logging': {
            'level': 'INFO',
            'log_file': 'logs/docscan.log',
        },
    }


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file, falling back to defaults."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not os.path.exists(config_path):
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return default_config()

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise InvalidInputError(f"Malformed config file {config_path}: {e}") from e

    if not isinstance(loaded, dict):
        raise InvalidInputError(f"Config root must be a mapping: {config_path}")

    return _deep_merge(default_config(), loaded)


def detection_config(config: Dict[str, Any]) -> DetectionConfig:
    return DetectionConfig(**config.get('detection', {}))


def smoothing_config(config: Dict[str, Any]) -> SmoothingConfig:
    return SmoothingConfig(**config.get('smoothing', {}))


def perspective_config(config: Dict[str, Any]) -> PerspectiveConfig:
    return PerspectiveConfig(**config.get('perspective', {}))
