"""
Configuration Module

Centralizes all configurable parameters.
"""

from gazestream.config.settings import (
    settings,
    Settings,
    NetworkConfig,
    ProtocolConfig,
    StreamerConfig,
)

__all__ = [
    "settings",
    "Settings",
    "NetworkConfig",
    "ProtocolConfig",
    "StreamerConfig",
]
