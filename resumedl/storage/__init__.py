"""
Storage Layer.

Handles the persistent configuration file.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
