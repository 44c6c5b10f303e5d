#!/usr/bin/env python3
"""
CLI entry point for linearfeed.cli module.

This allows running: python -m linearfeed.cli
"""

from .main import cli

if __name__ == "__main__":
    cli()
