"""CLI command groups."""

__all__ = ["config", "targets"]

from . import config, targets
