"""
Configuration module.

- RelaySettings / settings: process-wide settings from RELAY_* environment variables
- RunConfig: per-run overrides
"""

from .run_config import RunConfig
from .settings import RelaySettings, settings

__all__ = ["RelaySettings", "settings", "RunConfig"]
