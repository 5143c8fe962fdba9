#!/usr/bin/env python3
"""
Configuration management for Scribe.
Handles the API key, user preferences, and log setup under ~/.scribe.
"""

import os
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any


DEFAULTS: Dict[str, Any] = {
    'model': 'claude-sonnet-4-20250514',
    'max_tokens': 2048,
    'command_timeout': 120,
    'escape_timeout': 0.05,
    'default_mode': 'guided',
}

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def get_config_dir() -> Path:
    """Get the Scribe config directory (~/.scribe)"""
    config_dir = Path.home() / '.scribe'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the config file path"""
    return get_config_dir() / 'config.json'


def load_config() -> Dict[str, Any]:
    """Load configuration from file"""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return {}
    return {}


def get_api_key() -> Optional[str]:
    """ANTHROPIC_API_KEY from the environment, else from the config file"""
    api_key = os.getenv('ANTHROPIC_API_KEY')
    if api_key:
        return api_key
    return load_config().get('anthropic_api_key')


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a specific config value, falling back to the built-in default"""
    config = load_config()
    if key in config:
        return config[key]
    if default is None:
        return DEFAULTS.get(key)
    return default
