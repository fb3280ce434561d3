"""
Jarvis Client - A Python client and command line for the Jarvis chat API.

This package provides authenticated access to the Jarvis auth, conversation,
prompt and bot endpoints with transparent access-token refresh.
"""

__version__ = "0.1.0"
__author__ = "Jarvis Client Team"
__license__ = "Apache-2.0"

from typing import Final

# Package metadata
VERSION: Final[str] = __version__
PACKAGE_NAME: Final[str] = "jarvis-client"
USER_AGENT: Final[str] = f"{PACKAGE_NAME}/{VERSION}"

__all__ = [
    "__version__",
    "VERSION",
    "PACKAGE_NAME",
    "USER_AGENT",
]
