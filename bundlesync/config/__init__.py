"""Configuration — option files, command-line tokens and resolved settings."""

from bundlesync.config.options import Settings, load_settings

__all__ = ["Settings", "load_settings"]
