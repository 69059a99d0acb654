"""Logging for the VKE SDK."""

from .logger import BoundLogger, logger

__all__ = ["BoundLogger", "logger"]
