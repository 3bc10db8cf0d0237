"""
Threaded frame receivers.

A receiver owns one transport socket and one decoding front end
(StreamReassembler for TCP, DatagramAdapter for UDP). A daemon thread
pulls from the socket, decodes, and puts every FrameRecord on an output
queue for the consumer.

Lifecycle:
    receiver = TCPReceiver(frame_queue)
    receiver.start()      # spawns the worker thread
    ...                   # consumer reads frame_queue
    receiver.stop()       # signals, joins, closes the socket

Transport failures never end the worker: the socket is closed and
reopened after settings.network.reconnect_delay.
"""

import logging
import queue
import socket
import threading
from typing import Iterable, Optional

from gazestream.config import settings
from gazestream.protocol.models import FrameRecord

logger = logging.getLogger(__name__)


class FrameReceiver:
    """
    Base class for the TCP and UDP receivers.

    Subclasses implement:
        _is_open()  -- transport ready to read
        _open()     -- connect or bind; raise OSError on failure
        _poll()     -- one blocking read, returns the records it completed
        _close()    -- release the socket and any partial data

    socket.timeout from _poll() only means nothing arrived within
    recv_timeout; the worker uses it to check for stop().
    """

    transport = ""

    def __init__(self, output_queue: queue.Queue):
        self.output_queue = output_queue
        self.retry_delay = settings.network.reconnect_delay
        self.recv_timeout = settings.network.recv_timeout

        self._worker: Optional[threading.Thread] = None
        self._halt = threading.Event()

        self.frames_received = 0
        self.transport_errors = 0

    @property
    def endpoint(self) -> str:
        raise NotImplementedError

    def start(self) -> None:
        if self.is_running():
            logger.warning("%s receiver for %s is already running", self.transport, self.endpoint)
            return

        self._halt.clear()
        self._worker = threading.Thread(
            target=self._serve,
            name=f"{type(self).__name__}-{self.endpoint}",
            daemon=True,
        )
        self._worker.start()
        logger.info("%s receiver started for %s", self.transport, self.endpoint)

    def stop(self, timeout: float = 5.0) -> None:
        if self._worker is None:
            return

        self._halt.set()
        self._worker.join(timeout=timeout)
        if self._worker.is_alive():
            logger.warning(
                "%s receiver thread for %s did not exit within %.1fs",
                self.transport,
                self.endpoint,
                timeout,
            )
        self._worker = None
        self._close()

        logger.info(
            "%s receiver for %s stopped: %d frames, %d transport errors, decode errors %s",
            self.transport,
            self.endpoint,
            self.frames_received,
            self.transport_errors,
            dict(self.decode_errors()),
        )

    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def decode_errors(self):
        """Decode error counts by error class name."""
        raise NotImplementedError

    def _serve(self) -> None:
        while not self._halt.is_set():
            try:
                if not self._is_open():
                    self._open()
                self._publish(self._poll())

            except socket.timeout:
                continue

            except ConnectionError as e:
                if self._halt.is_set():
                    break
                logger.warning("%s %s: %s", self.transport, self.endpoint, e)
                self._retry_later()

            except OSError as e:
                if self._halt.is_set():
                    break
                self.transport_errors += 1
                logger.error(
                    "%s socket error on %s: %s", self.transport, self.endpoint, e, exc_info=True
                )
                self._retry_later()

        logger.debug("%s worker for %s exiting", self.transport, self.endpoint)

    def _publish(self, records: Iterable[FrameRecord]) -> None:
        for record in records:
            self.output_queue.put(record)
            self.frames_received += 1

    def _retry_later(self) -> None:
        self._close()
        logger.info("Reopening %s %s in %.1fs", self.transport, self.endpoint, self.retry_delay)
        self._halt.wait(self.retry_delay)

    def _is_open(self) -> bool:
        raise NotImplementedError

    def _open(self) -> None:
        raise NotImplementedError

    def _poll(self) -> Iterable[FrameRecord]:
        raise NotImplementedError

    def _close(self) -> None:
        raise NotImplementedError
