"""Publish a message to a queue.

CLI that declares the queue if needed and sends a message to it, for feeding
the bridge by hand.
"""

import json

import click
from pika.exceptions import AMQPError

from msg_bridge.cli.common import get_dsn
from msg_bridge.pool import AcquireError, ConnectionPool


@click.command()
@click.option(
    "--queue-name",
    type=str,
    required=True,
    help="The name of the queue to publish the message to",
)
@click.option("--message", type=str, required=True, help="The message to publish (JSON)")
@click.option("--dsn", type=str, required=False, help="The AMQP URI of the broker")
@click.option(
    "--raw",
    is_flag=True,
    default=False,
    help="Publish the message as given, without checking that it is JSON",
)
def main(queue_name: str, message: str, dsn: str, raw: bool) -> None:
    """Publish a message to the specified queue; declares the queue first."""
    click.echo(f"queue-name: {queue_name}")
    click.echo(f"message: {message}")
    dsn = get_dsn(dsn)

    if not raw:
        try:
            json.loads(message)
        except json.JSONDecodeError as err:
            raise click.ClickException(f"Invalid JSON: {message}") from err

    pool = ConnectionPool(dsn, max_size=1)
    try:
        with pool.connection() as connection:
            channel = connection.channel()
            channel.queue_declare(queue=queue_name)
            channel.basic_publish(exchange="", routing_key=queue_name, body=message.encode("utf-8"))
            channel.close()
        click.echo(f"Message published to {queue_name}")
    except AcquireError as e:
        raise click.ClickException(f"Error connecting to broker: {e}") from e
    except AMQPError as e:
        raise click.ClickException(f"Error publishing message: {e!r}") from e
    finally:
        pool.close()


if __name__ == "__main__":
    """Entry point for the publish CLI."""
    main()
