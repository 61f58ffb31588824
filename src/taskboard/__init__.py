"""Taskboard: a server-rendered task management client for a remote to-do API."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
