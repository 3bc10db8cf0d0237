"""
Application settings

Centralized configuration for the decoder, the receivers and the mock
streamer. Values come from environment variables (a local .env file is
loaded first) and fall back to the device defaults below.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass
class NetworkConfig:
    """Network configuration for the TCP and UDP receivers."""

    host: str = field(default_factory=lambda: os.getenv("GAZESTREAM_HOST", "localhost"))
    tcp_port: int = field(default_factory=lambda: _env_int("GAZESTREAM_TCP_PORT", 5002))
    udp_port: int = field(default_factory=lambda: _env_int("GAZESTREAM_UDP_PORT", 5001))
    recv_timeout: float = field(
        default_factory=lambda: _env_float("GAZESTREAM_RECV_TIMEOUT", 1.0)
    )  # Socket receive timeout (seconds)
    reconnect_delay: float = field(
        default_factory=lambda: _env_float("GAZESTREAM_RECONNECT_DELAY", 2.0)
    )  # Delay before reconnecting after disconnect
    read_size: int = 4096  # Max bytes per TCP read
    max_datagram_size: int = 65535  # Largest UDP datagram accepted
    queue_size: int = 1000  # Decoded frames buffered for the consumer


@dataclass
class ProtocolConfig:
    """Wire protocol configuration."""

    magic: bytes = b"\xaa\x55"  # Sync bytes at the start of every packet
    max_payload_size: int = field(
        default_factory=lambda: _env_int("GAZESTREAM_MAX_PAYLOAD_SIZE", 8192)
    )  # Larger declared payloads are treated as false magic matches
    schema_dir: Path = Path(__file__).parent.parent / "protocol" / "schemas"


@dataclass
class StreamerConfig:
    """Mock device streamer configuration."""

    frame_rate: float = 60.0  # Frames per second
    version: int = 1  # Field table the mock device encodes with


class Settings:
    """
    Root settings container with Singleton Pattern.

    Sub-configurations:
    - network: TCP/UDP receiver settings
    - protocol: framing constants and limits
    - streamer: mock device streamer settings
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if Settings._initialized:
            return

        self.network = NetworkConfig()
        self.protocol = ProtocolConfig()
        self.streamer = StreamerConfig()

        Settings._initialized = True


# Singleton instance - all modules import this same object
settings = Settings()
