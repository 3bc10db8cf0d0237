"""
Ingestion Stage

Handles receiving packets from the device and framing them for the decoder.

Components:
- stream_reassembler: TCP byte stream framing, buffering and resync
- datagram_adapter: Per-datagram decoding for UDP
- sources: Socket-backed byte and datagram sources
- receiver: FrameReceiver base, worker thread lifecycle and reconnects
- tcp_receiver / udp_receiver: Threaded receivers feeding a queue

Usage:
    from gazestream.ingestion import StreamReassembler, DatagramAdapter
    from gazestream.ingestion import TCPReceiver, UDPReceiver
"""

from gazestream.ingestion.stream_reassembler import (
    ByteSource,
    ReassemblerState,
    StreamReassembler,
)

from gazestream.ingestion.datagram_adapter import (
    DatagramAdapter,
    DatagramSource,
)

from gazestream.ingestion.sources import (
    SocketByteSource,
    SocketDatagramSource,
)

from gazestream.ingestion.receiver import FrameReceiver

from gazestream.ingestion.tcp_receiver import TCPReceiver

from gazestream.ingestion.udp_receiver import UDPReceiver

__all__ = [
    # Framing
    "ByteSource",
    "ReassemblerState",
    "StreamReassembler",
    "DatagramAdapter",
    "DatagramSource",
    # Sources
    "SocketByteSource",
    "SocketDatagramSource",
    # Receivers
    "FrameReceiver",
    "TCPReceiver",
    "UDPReceiver",
]
