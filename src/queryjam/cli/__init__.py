"""
QueryJam CLI - serve the API and manage the database.
"""

from __future__ import annotations

from .main import main, app

__all__ = ["main", "app"]
