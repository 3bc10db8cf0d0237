"""
Mock Device Streamer - TCP/UDP Tracking Output

Simulates a tracking device streaming synthetic head and gaze frames at the
configured frame rate, so the client can be run end to end without hardware.

Usage:
    python -m gazestream.mock_streamer tcp [port]         # serve one client at a time
    python -m gazestream.mock_streamer udp [port] [host]  # send datagrams to host:port

TCP mode listens like the real device and keeps generating frames while no
client is connected. Every 30th frame omits the gaze block, so clients see
absent fields as well as present ones.
"""

import argparse
import logging
import socket
import threading
import time
from typing import Optional

import numpy as np

from gazestream.config import settings
from gazestream.protocol.encoder import encode_frame
from gazestream.protocol.field_table import FieldTable, field_tables


logger = logging.getLogger(__name__)

# Gaze drops out for one frame in this many (simulated tracking loss)
GAZE_DROPOUT_INTERVAL = 30

# Frames between progress log lines
PROGRESS_LOG_INTERVAL = 300


# =============================================================================
# SYNTHETIC FRAMES
# =============================================================================


def _unit(vector: np.ndarray) -> np.ndarray:
    return vector / np.linalg.norm(vector)


def synthetic_frame(frame_number: int, table: FieldTable, frame_rate: float) -> dict:
    """
    Build the field values for one synthetic frame.

    The head sways slowly in front of the cameras and the gaze sweeps
    left and right. Only fields the table defines are included.

    Args:
        frame_number: Sequence number of the frame
        table: Field table the frame will be encoded with
        frame_rate: Nominal frame rate (Hz)

    Returns:
        dict: Field name to plain value, ready for encode_frame()
    """
    t = frame_number / frame_rate

    head = np.array([0.05 * np.sin(0.5 * t), 0.02 * np.sin(0.3 * t), 0.65])
    yaw = 0.3 * np.sin(0.4 * t)
    gaze = _unit(np.array([np.sin(yaw), -0.1, -np.cos(yaw)]))
    eye_offset = np.array([0.032, 0.0, 0.0])

    values = {
        "FrameNumber": frame_number,
        "EstimatedDelay": 16000,
        "TimeStamp": int(t * 1e4),
        "FrameRate": frame_rate,
        "HeadPosition": head,
        "HeadPositionQ": 0.95,
        "HeadRotationQuaternion": (np.cos(yaw / 2), 0.0, np.sin(yaw / 2), 0.0),
        "HeadHeading": yaw,
        "HeadPitch": 0.0,
        "HeadRoll": 0.0,
        "EyelidOpening": 0.011,
        "PupilDiameter": 0.004 + 0.0005 * np.sin(t),
        "Blink": 1 if frame_number % 240 == 0 else 0,
        "TrackingError": 0,
    }

    if "CameraPositions" in table:
        cameras = table.field("CameraPositions").count
        spread = np.linspace(-0.2, 0.2, cameras)
        values["CameraPositions"] = np.column_stack(
            [spread, np.zeros(cameras), np.zeros(cameras)]
        )

    if frame_number % GAZE_DROPOUT_INTERVAL != 0:
        values.update(
            {
                "GazeOrigin": head,
                "GazeDirection": gaze,
                "GazeDirectionQ": 0.9,
                "LeftEyePosition": head - eye_offset,
                "RightEyePosition": head + eye_offset,
                "GazeHeading": float(np.arctan2(gaze[0], -gaze[2])),
                "GazePitch": float(np.arcsin(gaze[1])),
            }
        )

    return {name: value for name, value in values.items() if name in table}


def frame_packets(version: int, frame_rate: float, limit: Optional[int] = None):
    """Yield encoded packets for consecutive synthetic frames."""
    table = field_tables.load(version)
    frame_number = 0
    while limit is None or frame_number < limit:
        yield encode_frame(synthetic_frame(frame_number, table, frame_rate), version=version)
        frame_number += 1


# =============================================================================
# STREAMERS
# =============================================================================


class MockStreamer:
    """
    Streams synthetic frames over TCP or UDP at a fixed rate.

    TCP: listens on port and sends to whichever client is connected.
    UDP: sends each packet as one datagram to (host, port).
    """

    def __init__(
        self,
        transport: str,
        port: Optional[int] = None,
        host: Optional[str] = None,
        frame_rate: Optional[float] = None,
        version: Optional[int] = None,
    ):
        if transport not in ("tcp", "udp"):
            raise ValueError(f"Unknown transport '{transport}'")

        self.transport = transport
        default_port = settings.network.tcp_port if transport == "tcp" else settings.network.udp_port
        self.port = default_port if port is None else port
        self.host = host or settings.network.host
        self.frame_rate = frame_rate or settings.streamer.frame_rate
        self.version = settings.streamer.version if version is None else version
        self.frame_interval = 1.0 / self.frame_rate

        self._stop_event = threading.Event()
        self._server_sock: Optional[socket.socket] = None
        self._client_sock: Optional[socket.socket] = None
        self._udp_sock: Optional[socket.socket] = None

        # Statistics
        self.frames_sent = 0
        self.bytes_sent = 0

    def stop(self) -> None:
        self._stop_event.set()

    def run(self, limit: Optional[int] = None) -> None:
        """Stream until stop() is called or limit frames were generated."""
        self._open()
        logger.info(
            "Streaming v%d frames over %s port %d at %.1f FPS",
            self.version,
            self.transport.upper(),
            self.port,
            self.frame_rate,
        )

        try:
            for frame_number, packet in enumerate(
                frame_packets(self.version, self.frame_rate, limit)
            ):
                if self._stop_event.is_set():
                    break

                frame_start = time.monotonic()
                self._send(packet)

                if frame_number % PROGRESS_LOG_INTERVAL == 0:
                    logger.info(
                        "Frame %06d, %d bytes (sent=%d)", frame_number, len(packet), self.frames_sent
                    )

                # Hold the configured rate regardless of connection status
                elapsed = time.monotonic() - frame_start
                self._stop_event.wait(max(0.0, self.frame_interval - elapsed))
        finally:
            self._close()
            logger.info(
                "Streamer stopped - %d frames sent, %d bytes", self.frames_sent, self.bytes_sent
            )

    def _open(self) -> None:
        if self.transport == "tcp":
            self._server_sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self._server_sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._server_sock.bind(("0.0.0.0", self.port))
            self._server_sock.listen(1)
            self._server_sock.setblocking(False)
        else:
            self._udp_sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def _close(self) -> None:
        for sock in (self._client_sock, self._server_sock, self._udp_sock):
            if sock:
                sock.close()
        self._client_sock = self._server_sock = self._udp_sock = None

    def _send(self, packet: bytes) -> None:
        if self.transport == "udp":
            self._udp_sock.sendto(packet, (self.host, self.port))
            self._count(packet)
            return

        if self._client_sock is None:
            self._accept()
        if self._client_sock is None:
            return

        try:
            self._client_sock.sendall(packet)
            self._count(packet)
        except OSError as e:
            logger.info("Client disconnected (%s)", e)
            self._client_sock.close()
            self._client_sock = None

    def _accept(self) -> None:
        try:
            self._client_sock, addr = self._server_sock.accept()
        except BlockingIOError:
            # No client waiting; keep generating frames
            return
        self._client_sock.setblocking(True)
        logger.info("Client connected from %s:%d", *addr)

    def _count(self, packet: bytes) -> None:
        self.frames_sent += 1
        self.bytes_sent += len(packet)


# =============================================================================
# MAIN
# =============================================================================


def main(argv=None):
    parser = argparse.ArgumentParser(description="Mock tracking device streamer")
    parser.add_argument("transport", choices=["tcp", "udp"], help="Transport to stream over")
    parser.add_argument("port", type=int, nargs="?", help="Port (defaults from settings)")
    parser.add_argument("host", nargs="?", help="UDP destination host (defaults from settings)")
    parser.add_argument("--fps", type=float, help="Frame rate (defaults from settings)")
    parser.add_argument("--frames", type=int, help="Stop after this many frames")
    parser.add_argument("--version", type=int, help="Field table version to encode with")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    )

    streamer = MockStreamer(
        args.transport,
        port=args.port,
        host=args.host,
        frame_rate=args.fps,
        version=args.version,
    )

    try:
        streamer.run(limit=args.frames)
    except KeyboardInterrupt:
        logger.info("Interrupted by user, shutting down")
        streamer.stop()


if __name__ == "__main__":
    main()
