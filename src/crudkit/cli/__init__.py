"""
crudkit CLI - Command line tools for inspecting entity configuration.
"""

from __future__ import annotations

from .main import main, app

__all__ = ["main", "app"]
