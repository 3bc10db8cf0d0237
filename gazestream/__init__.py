"""
gazestream

Decoder for the binary eye/head/gaze tracking stream of a tracking device,
received over TCP or UDP.

Usage:
    from gazestream import StreamReassembler, DatagramAdapter, decode_frame

    reassembler = StreamReassembler()
    for record in reassembler.feed(chunk):
        print(record.value("FrameNumber"), record.value("GazeDirection"))
"""

from gazestream.protocol import (
    ABSENT,
    DecodeError,
    FrameDecoder,
    FrameRecord,
    Present,
    decode_frame,
    encode_frame,
    field_tables,
)
from gazestream.ingestion import (
    DatagramAdapter,
    StreamReassembler,
    TCPReceiver,
    UDPReceiver,
)

__all__ = [
    "ABSENT",
    "DecodeError",
    "FrameDecoder",
    "FrameRecord",
    "Present",
    "decode_frame",
    "encode_frame",
    "field_tables",
    "DatagramAdapter",
    "StreamReassembler",
    "TCPReceiver",
    "UDPReceiver",
]
