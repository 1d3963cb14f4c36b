"""Core configuration and application primitives."""

from helpdesk_copilot.core.settings import Settings, ensure_directories, get_settings

__all__ = ["Settings", "get_settings", "ensure_directories"]
