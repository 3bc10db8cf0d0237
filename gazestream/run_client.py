"""
Socket Client Demo

Connects to a tracking device (or the mock streamer) and prints the frame
timestamp, frame number and camera positions of every decoded frame.

Usage:
    python -m gazestream.run_client tcp [port] [host]
    python -m gazestream.run_client udp [port]

Run against the mock device:
    python -m gazestream.mock_streamer tcp &
    python -m gazestream.run_client tcp
"""

import argparse
import logging
import queue
import time

from gazestream.config import settings
from gazestream.ingestion.tcp_receiver import TCPReceiver
from gazestream.ingestion.udp_receiver import UDPReceiver
from gazestream.protocol.models import FrameRecord


logger = logging.getLogger(__name__)

# How long the main loop blocks on the queue before checking the limit again
POLL_INTERVAL = 0.5


def format_frame(record: FrameRecord) -> str:
    """One line per frame; absent fields print as '-'."""
    timestamp = record.value("TimeStamp", "-") if "TimeStamp" in record else "-"
    frame_number = record.frame_number if record.frame_number is not None else "-"

    cameras = record.value("CameraPositions") if "CameraPositions" in record else None
    if cameras is None:
        camera_text = "-"
    else:
        camera_text = " ".join(f"({p.x:.3f}, {p.y:.3f}, {p.z:.3f})" for p in cameras)

    return f"TimeStamp={timestamp} FrameNumber={frame_number} CameraPositions={camera_text}"


def create_receiver(transport: str, frame_queue: queue.Queue, port=None, host=None):
    if transport == "tcp":
        return TCPReceiver(frame_queue, host=host, port=port)
    return UDPReceiver(frame_queue, port=port)


def run(receiver, frame_queue: queue.Queue, limit=None) -> int:
    """Print frames from the queue until limit frames were shown or Ctrl-C."""
    shown = 0
    receiver.start()

    try:
        while limit is None or shown < limit:
            try:
                record = frame_queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue

            print(format_frame(record), flush=True)
            shown += 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")

    finally:
        receiver.stop()

    return shown


def main(argv=None):
    parser = argparse.ArgumentParser(description="Print frames from a tracking device")
    parser.add_argument("transport", choices=["tcp", "udp"], help="Transport to receive over")
    parser.add_argument("port", type=int, nargs="?", help="Port (defaults from settings)")
    parser.add_argument("host", nargs="?", help="TCP device host (defaults from settings)")
    parser.add_argument("--frames", type=int, help="Exit after printing this many frames")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    )

    frame_queue = queue.Queue(maxsize=settings.network.queue_size)
    receiver = create_receiver(args.transport, frame_queue, port=args.port, host=args.host)

    start = time.perf_counter()
    shown = run(receiver, frame_queue, limit=args.frames)
    elapsed = time.perf_counter() - start

    logger.info(
        "Printed %d frames in %.1fs (%.1f FPS)", shown, elapsed, shown / elapsed if elapsed else 0.0
    )


if __name__ == "__main__":
    main()
