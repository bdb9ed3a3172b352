"""Configuration module for TransactWise."""

from transactwise.config.logging import configure_logging
from transactwise.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "configure_logging"]
