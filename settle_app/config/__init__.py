"""
Configuration module.

Frozen defaults, YAML overrides and validation for the settlement client.
"""
from .defaults import SettleConfig, get_default_config
from .loader import ConfigLoader

__all__ = ["SettleConfig", "get_default_config", "ConfigLoader"]
