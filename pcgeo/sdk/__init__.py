"""Programmatic entry points mirroring the CLI."""

from .run import ConfigRunResult, process_from_config

__all__ = ["ConfigRunResult", "process_from_config"]
