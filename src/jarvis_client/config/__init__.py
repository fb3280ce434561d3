"""
Configuration package for the Jarvis client.

This package contains settings management and .env file discovery.
"""

from .settings import JarvisSettings, MODEL_NAMES, get_settings
from .env_loader import EnvFileLoader, load_env_with_hierarchy

__all__ = [
    "JarvisSettings",
    "MODEL_NAMES",
    "get_settings",
    "EnvFileLoader",
    "load_env_with_hierarchy",
]
