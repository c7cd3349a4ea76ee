# swapagent/config/__init__.py
"""Configuration package for swapagent."""

from .settings import settings, Settings

__all__ = ["settings", "Settings"]
