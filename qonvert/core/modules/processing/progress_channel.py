"""
Progress channel module for qonvert.

ffmpeg's ``-progress <url>`` option connects to a URL and streams
``key=value`` status lines to it until the encode finishes. This module
gives each job a private listening endpoint for that stream and turns what
arrives into ProgressEvent objects:

- ProgressParser: incremental parser tolerant of arbitrary chunk boundaries
- ProgressChannel: owns the endpoint and a reader thread, exposes the
  events as an iterator

The endpoint is a Unix domain socket inside a private temporary directory
where AF_UNIX is available, otherwise a loopback TCP port.
"""

import os
import queue
import re
import selectors
import socket
import tempfile
import threading
from pathlib import Path
from typing import Iterator, Optional, Tuple

from ..errors import ProgressStreamError
from ..models import ProgressEvent, SizedJob
from ..system.system_utils import TEMP_FILES, remove_path
from ....utils.logging import get_logger

logger = get_logger("progress_channel")

PROGRESS_END = b"progress=end"
_FRAME_RE = re.compile(rb"(?m)^frame=[ \t]*(\d+)")

_CLOSED = object()


class ProgressParser:
    """
    Incremental parser for ffmpeg's ``-progress`` output.

    Only complete lines are scanned for ``frame=<n>``; the unterminated tail
    is carried into the next feed so a number split across two reads is
    never reported half-read. The most recent ``frame`` value wins.
    """

    def __init__(self, total_units: int):
        self.total_units = total_units
        self.current: Optional[int] = None
        self.finished = False
        self._pending = b""

    def feed(self, chunk: bytes) -> Optional[int]:
        """
        Consume *chunk* and return the position to report, if it changed.

        Once the end sentinel has been seen the parser is finished and the
        returned position is the final one.
        """
        if self.finished:
            return None

        data = self._pending + chunk
        cut = data.rfind(b"\n") + 1
        complete, self._pending = data[:cut], data[cut:]

        position = None
        matches = _FRAME_RE.findall(complete)
        if matches:
            value = int(matches[-1])
            if self.total_units > 0:
                value = min(value, self.total_units)
            if self.current is None or value > self.current:
                self.current = position = value

        if PROGRESS_END in data:
            self.finished = True
            self._pending = b""
            if self.total_units > 0:
                self.current = self.total_units
            elif self.current is None:
                self.current = 0
            return self.current

        return position

    @property
    def final_total(self) -> int:
        """Total to report with the completion event (observed count when unknown)."""
        if self.total_units > 0:
            return self.total_units
        return self.current or 0


def _unix_sockets_supported() -> bool:
    return hasattr(socket, "AF_UNIX") and os.name != "nt"


class ProgressChannel:
    """
    Job-scoped listening endpoint for one ffmpeg progress stream.

    Usage:
        with ProgressChannel(job) as channel:
            spawn ffmpeg with ["-progress", channel.url, ...]
            ...on process exit: channel.stop_accepting()
            for event in channel:
                ...

    The reader thread accepts exactly one connection. It stops, and the
    endpoint is released, when the end sentinel arrives, the connection
    reaches EOF or fails, or stop_accepting() is called before ffmpeg
    connected.
    """

    def __init__(self, job: SizedJob, maxsize: int = 64, chunk_size: int = 4096,
                 use_unix_socket: Optional[bool] = None):
        self.job = job
        self.chunk_size = chunk_size
        self.url: Optional[str] = None
        self.parser = ProgressParser(job.total_units)
        self.error: Optional[ProgressStreamError] = None

        self._use_unix = _unix_sockets_supported() if use_unix_socket is None else use_unix_socket
        self._events: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._listener: Optional[socket.socket] = None
        self._conn: Optional[socket.socket] = None
        self._endpoint_dir: Optional[Path] = None
        self._reader: Optional[threading.Thread] = None
        self._wake_r, self._wake_w = socket.socketpair()
        self._lock = threading.Lock()
        self._released = False
        self._stopping = False
        self._exhausted = False

    def __enter__(self) -> "ProgressChannel":
        self.open()
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def __iter__(self) -> Iterator[ProgressEvent]:
        return self.events()

    @property
    def released(self) -> bool:
        return self._released

    @property
    def endpoint_path(self) -> Optional[Path]:
        """Filesystem path of the Unix socket, None for TCP endpoints."""
        if self._endpoint_dir is None:
            return None
        return self._endpoint_dir / "progress.sock"

    def open(self) -> str:
        """Bind the endpoint, start the reader thread and return the URL for ``-progress``."""
        if self.url is not None:
            return self.url

        try:
            if self._use_unix:
                self._endpoint_dir = Path(tempfile.mkdtemp(prefix="qonvert-"))
                TEMP_FILES.add(self._endpoint_dir)
                self._listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
                self._listener.bind(str(self.endpoint_path))
                self.url = f"unix://{self.endpoint_path}"
            else:
                self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                self._listener.bind(("127.0.0.1", 0))
                host, port = self._listener.getsockname()
                self.url = f"tcp://{host}:{port}"
            self._listener.listen(1)
        except OSError:
            self._release_endpoint()
            raise

        logger.progress(f"{self.job.input_path.name}: listening on {self.url}")

        self._reader = threading.Thread(
            target=self._serve,
            name=f"progress-{self.job.input_path.name}",
            daemon=True,
        )
        self._reader.start()
        return self.url

    def events(self) -> Iterator[ProgressEvent]:
        """Yield events until the stream closes. A closed stream yields nothing."""
        while not self._exhausted:
            item = self._events.get()
            if item is _CLOSED:
                self._exhausted = True
                return
            yield item

    def stop_accepting(self):
        """Tell the reader the converter is gone; a pending accept gives up."""
        with self._lock:
            if self._stopping:
                return
            self._stopping = True
        try:
            self._wake_w.send(b"\0")
        except OSError:
            pass

    def close(self):
        """Stop the reader thread and release every resource the channel holds."""
        self.stop_accepting()
        if self._reader is not None:
            while self._reader.is_alive():
                # the stream is being abandoned mid-read
                self._abandon_connection()
                self._drain()
                self._reader.join(timeout=0.05)
        self._release_endpoint()
        self._wake_r.close()
        self._wake_w.close()

    def _abandon_connection(self):
        conn = self._conn
        if conn is None:
            return
        try:
            conn.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

    def _drain(self):
        try:
            while True:
                if self._events.get_nowait() is _CLOSED:
                    self._exhausted = True
        except queue.Empty:
            pass

    def _serve(self):
        try:
            conn = self._accept()
            if conn is None:
                logger.progress(f"{self.job.input_path.name}: converter never connected")
                return
            self._conn = conn
            with conn:
                # one connection per job, nobody else may connect
                self._release_endpoint()
                self._read(conn)
        except ProgressStreamError as e:
            self.error = e
            logger.debug(f"{self.job.input_path.name}: progress stream lost: {e.message}")
        finally:
            self._release_endpoint()
            self._events.put(_CLOSED)

    def _accept(self) -> Optional[socket.socket]:
        listener = self._listener
        with selectors.DefaultSelector() as selector:
            selector.register(listener, selectors.EVENT_READ)
            selector.register(self._wake_r, selectors.EVENT_READ)
            while True:
                try:
                    ready = [key.fileobj for key, _ in selector.select()]
                except OSError as e:
                    raise ProgressStreamError(f"waiting for connection failed: {e}") from e
                # a connection already queued wins over a stop request
                if listener in ready:
                    try:
                        conn, _ = listener.accept()
                    except OSError as e:
                        raise ProgressStreamError(f"accept failed: {e}") from e
                    conn.setblocking(True)
                    return conn
                if self._wake_r in ready:
                    return None

    def _read(self, conn: socket.socket):
        while True:
            try:
                chunk = conn.recv(self.chunk_size)
            except OSError as e:
                raise ProgressStreamError(f"read failed: {e}") from e
            if not chunk:
                logger.progress(f"{self.job.input_path.name}: stream ended without {PROGRESS_END.decode()}")
                return

            position = self.parser.feed(chunk)
            if self.parser.finished:
                self._events.put(ProgressEvent(self.job, position, self.parser.final_total))
                logger.progress(f"{self.job.input_path.name}: complete")
                return
            if position is not None:
                self._events.put(ProgressEvent(self.job, position, self.job.total_units))

    def _release_endpoint(self):
        with self._lock:
            if self._released:
                return
            self._released = True
            listener, self._listener = self._listener, None

        if listener is not None:
            listener.close()
        if self._endpoint_dir is not None:
            remove_path(self._endpoint_dir)
        logger.cleanup(f"released progress endpoint {self.url}")


def open_progress_channel(job: SizedJob, **kwargs) -> Tuple[str, ProgressChannel]:
    """Open a channel for *job* and return ``(url, channel)``; iterate the channel for events."""
    channel = ProgressChannel(job, **kwargs)
    return channel.open(), channel
