"""Shared utilities for the cognitive tracking system."""

from .config_loader import get_nested_config, load_config, merge_config

__all__ = [
    'get_nested_config',
    'load_config',
    'merge_config',
]
