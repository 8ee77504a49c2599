"""Bounded pool of AMQP broker connections.

Connections are opened lazily on first use and reused while they stay open.
Checkout is thread-safe; at most max_size connections exist at any time.
"""

import logging
import queue
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import pika
from pika.adapters.blocking_connection import BlockingConnection
from pika.exceptions import AMQPError

from msg_bridge.models import PoolStatus

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 10


class AcquireError(Exception):
    """A connection could not be checked out of the pool."""


class ConnectionPool:
    """Fixed-capacity pool of pika blocking connections to one broker."""

    def __init__(
        self,
        url: str,
        max_size: int = DEFAULT_MAX_SIZE,
        timeout: float | None = None,
        connection_factory: Callable[[pika.URLParameters], BlockingConnection] = pika.BlockingConnection,
    ) -> None:
        """Parse the broker URL; no connection is opened until the first get().

        Args:
            url: AMQP URI of the broker.
            max_size: Maximum number of live connections.
            timeout: Seconds to wait for a free slot; None waits indefinitely.
            connection_factory: Opens a connection from parameters.
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.parameters = pika.URLParameters(url)
        self.max_size = max_size
        self.timeout = timeout
        self._connection_factory = connection_factory
        self._slots = threading.BoundedSemaphore(max_size)
        self._idle: queue.LifoQueue = queue.LifoQueue()
        self._lock = threading.Lock()
        self._size = 0

    def get(self) -> BlockingConnection:
        """Check out an open connection, connecting if no idle one is available."""
        if not self._slots.acquire(timeout=self.timeout):
            raise AcquireError(f"no connection available within {self.timeout}s")
        try:
            connection = self._take_idle()
            if connection is None:
                connection = self._connect()
        except BaseException:
            self._slots.release()
            raise
        return connection

    def put(self, connection: BlockingConnection) -> None:
        """Return a checked out connection; closed connections are discarded."""
        try:
            if connection.is_open:
                self._idle.put(connection)
            else:
                logger.info("discarding closed broker connection")
                with self._lock:
                    self._size -= 1
        finally:
            self._slots.release()

    @contextmanager
    def connection(self) -> Iterator[BlockingConnection]:
        """Check out a connection for the duration of the block."""
        connection = self.get()
        try:
            yield connection
        finally:
            self.put(connection)

    def status(self) -> PoolStatus:
        """Return current pool counts."""
        with self._lock:
            return PoolStatus(max_size=self.max_size, size=self._size, available=self._idle.qsize())

    def close(self) -> None:
        """Close all idle connections."""
        while True:
            try:
                connection = self._idle.get_nowait()
            except queue.Empty:
                break
            with self._lock:
                self._size -= 1
            if connection.is_open:
                try:
                    connection.close()
                except AMQPError as e:
                    logger.warning("error closing broker connection: %s", e)

    def _take_idle(self) -> BlockingConnection | None:
        while True:
            try:
                connection = self._idle.get_nowait()
            except queue.Empty:
                return None
            if connection.is_open:
                return connection
            with self._lock:
                self._size -= 1

    def _connect(self) -> BlockingConnection:
        logger.info("opening broker connection to %s:%s", self.parameters.host, self.parameters.port)
        try:
            connection = self._connection_factory(self.parameters)
        except AMQPError as e:
            raise AcquireError(f"could not connect to broker: {e!r}") from e
        with self._lock:
            self._size += 1
        return connection
