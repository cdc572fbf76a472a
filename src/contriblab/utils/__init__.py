"""Shared utilities."""

from contriblab.utils.logger import console_log, setup_logger

__all__ = ["console_log", "setup_logger"]
