"""
Entry point for running txmigrate as a module.

Enables execution via:
    python -m txmigrate [command] [options]

This is equivalent to running the installed CLI:
    txmigrate [command] [options]
"""

from txmigrate.cli import app

if __name__ == "__main__":
    app()
