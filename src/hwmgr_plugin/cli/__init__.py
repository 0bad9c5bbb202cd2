# src/hwmgr_plugin/cli/__init__.py
"""
hwmgr-plugin CLI Package

Exposes the top-level Typer `app` for the console entrypoint and tests.
"""

from .main import app

__all__ = ["app"]
