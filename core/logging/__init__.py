"""Logging helpers for the feed core."""

from .logger import get_logger, setup_logging, is_verbose_logging

__all__ = ['get_logger', 'setup_logging', 'is_verbose_logging']
