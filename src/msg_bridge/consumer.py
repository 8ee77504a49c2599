"""Consume deliveries from the queue and turn each into an HTTP request.

One consumption attempt checks out a pooled connection, declares the queue,
subscribes a single consumer and handles deliveries strictly one at a time.
Each delivery is acknowledged after its dispatch attempt, whatever the
outcome. A broker failure ends the attempt; ConsumerDriver then waits a fixed
interval and starts a new one, without limit.
"""

import logging
import time
from collections.abc import Callable
from enum import Enum

from pika.adapters.blocking_connection import BlockingChannel
from pika.exceptions import AMQPError
from pika.spec import Basic

from msg_bridge.dispatch import Dispatcher
from msg_bridge.pool import AcquireError, ConnectionPool
from msg_bridge.translation import RequestBuilder

logger = logging.getLogger(__name__)

RETRY_INTERVAL = 5.0
CONSUMER_TAG = "index_consumer"


class ConsumerState(str, Enum):
    """Phase of the current consumption attempt."""

    CONNECTING = "connecting"
    DECLARING = "declaring"
    CONSUMING = "consuming"
    FAILED = "failed"


def handle_delivery(
    channel: BlockingChannel,
    method: Basic.Deliver,
    body: bytes,
    builder: RequestBuilder,
    dispatcher: Dispatcher,
) -> bool:
    """Build, dispatch and acknowledge one delivery.

    Returns False, without acknowledging, when the body is not valid UTF-8;
    the broker's own redelivery policy then applies. Otherwise the delivery
    is acknowledged even if no request could be built or the dispatch failed.
    """
    logger.info("got a message: delivery_tag=%s, %d bytes", method.delivery_tag, len(body))
    try:
        body.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.warning("could not convert message to string: %s", e)
        return False

    request = builder.build(body)
    if request is None:
        logger.warning("could not build request for delivery_tag=%s", method.delivery_tag)
    else:
        outcome = dispatcher.dispatch(request)
        logger.info("got response: %s", outcome.model_dump(exclude_none=True))

    channel.basic_ack(delivery_tag=method.delivery_tag)
    return True


class ConsumerDriver:
    """Runs consumption attempts against the pool, retrying after a fixed interval."""

    def __init__(
        self,
        pool: ConnectionPool,
        builder: RequestBuilder,
        dispatcher: Dispatcher,
        queue_name: str,
        consumer_tag: str = CONSUMER_TAG,
        retry_interval: float = RETRY_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.pool = pool
        self.builder = builder
        self.dispatcher = dispatcher
        self.queue_name = queue_name
        self.consumer_tag = consumer_tag
        self.retry_interval = retry_interval
        self.state = ConsumerState.CONNECTING
        self._sleep = sleep

    def run(self, max_attempts: int | None = None) -> None:
        """Run attempts until max_attempts is reached; forever when it is None.

        The first attempt starts immediately, every later one after
        retry_interval seconds.
        """
        attempts = 0
        while max_attempts is None or attempts < max_attempts:
            if attempts:
                logger.info("retrying in %ss", self.retry_interval)
                self._sleep(self.retry_interval)
            attempts += 1
            if self.run_once():
                logger.info("rmq listen returned")

    def run_once(self) -> bool:
        """Run one consumption attempt.

        Returns:
            True if consuming ended without error, False after a broker
            failure (state is then FAILED).
        """
        self.state = ConsumerState.CONNECTING
        logger.info("connecting rmq consumer...")
        try:
            with self.pool.connection() as connection:
                self.state = ConsumerState.DECLARING
                channel = connection.channel()
                try:
                    self._listen(channel)
                finally:
                    if channel.is_open:
                        channel.close()
        except AcquireError as e:
            self.state = ConsumerState.FAILED
            logger.error("could not get rmq con: %s", e)
            return False
        except AMQPError as e:
            logger.error("rmq listen had an error while %s: %r", self.state.value, e)
            self.state = ConsumerState.FAILED
            return False
        return True

    def _listen(self, channel: BlockingChannel) -> None:
        declared = channel.queue_declare(queue=self.queue_name)
        logger.info("Declared queue %s (%s messages ready)", self.queue_name, declared.method.message_count)

        def on_message(ch: BlockingChannel, method: Basic.Deliver, properties, body: bytes) -> None:
            handle_delivery(ch, method, body, self.builder, self.dispatcher)

        channel.basic_consume(
            queue=self.queue_name,
            on_message_callback=on_message,
            consumer_tag=self.consumer_tag,
        )
        self.state = ConsumerState.CONSUMING
        logger.info("rmq consumer connected, waiting for messages")
        channel.start_consuming()
