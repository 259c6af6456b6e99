"""CLI command handlers."""

from .run import run_capture

__all__ = ['run_capture']
