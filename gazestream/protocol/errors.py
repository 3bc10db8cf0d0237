"""
Decode error taxonomy.

Every failure to turn bytes into a FrameRecord raises one of these. They
derive from ValueError so callers that only care about "bad packet" can
catch the builtin.
"""

from typing import Optional


class DecodeError(ValueError):
    """Base class for all packet decoding failures."""


class InvalidMagic(DecodeError):
    """Packet does not start with the sync bytes."""


class UnknownVersion(DecodeError):
    """No field table is registered for the packet's protocol version."""

    def __init__(self, version: int, message: Optional[str] = None):
        self.version = version
        super().__init__(message or f"No field table registered for version {version}")


class MalformedHeader(DecodeError):
    """Header values are inconsistent with any valid packet."""


class TruncatedPacket(DecodeError):
    """Fewer bytes are available than the packet requires."""


class OversizedPacket(DecodeError):
    """Declared or buffered packet size exceeds the configured maximum."""


class DecodeFailure(DecodeError):
    """Field values do not fit the declared payload bounds."""
