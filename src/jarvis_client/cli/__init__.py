"""
Command-line interface for the Jarvis client.

The Typer application lives in app.py and is installed as ``jarvis``.
"""

__all__ = ["app"]
