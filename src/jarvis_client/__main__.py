"""
Entry point for running the Jarvis client as a module.

This allows users to run the CLI using:
    python -m jarvis_client [command] [options]
"""

from jarvis_client.cli.app import app

if __name__ == "__main__":
    app()
