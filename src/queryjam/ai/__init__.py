"""
Query assistant (OpenAI-compatible text generation).
"""

from __future__ import annotations

from .assistant import QueryAssistant

__all__ = ["QueryAssistant"]
