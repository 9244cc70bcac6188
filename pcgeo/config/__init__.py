"""Configuration loading utilities for pcgeo."""

from .schema import (
    ProcessingConfig,
    load_config,
)

__all__ = ["ProcessingConfig", "load_config"]
