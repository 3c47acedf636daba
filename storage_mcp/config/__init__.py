"""
Config Module
Configuration management.
"""

from .settings import ConfigManager, Config

__all__ = [
    "ConfigManager", 
    "Config",
]
