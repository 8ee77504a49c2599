"""Manage a queue on the broker.

CLI that creates, inspects, purges or destroys a queue by name.
"""

import click
from icecream import ic
from pika.adapters.blocking_connection import BlockingChannel
from pika.exceptions import AMQPError, ChannelClosedByBroker

from msg_bridge.cli.common import get_dsn
from msg_bridge.pool import AcquireError, ConnectionPool

NOT_FOUND = 404


def queue_status(channel: BlockingChannel, queue_name: str) -> dict:
    """Return message and consumer counts of an existing queue."""
    declared = channel.queue_declare(queue=queue_name, passive=True)
    return {
        "queue_name": queue_name,
        "message_count": declared.method.message_count,
        "consumer_count": declared.method.consumer_count,
    }


@click.command()
@click.option("--queue-name", type=str, required=True, help="The name of the queue to act on")
@click.option("--dsn", type=str, required=False, help="The AMQP URI of the broker")
@click.option(
    "--action",
    type=click.Choice(["create", "status", "destroy", "purge"]),
    required=True,
    help="The action to perform on the queue",
)
def main(queue_name: str, dsn: str, action: str = "status") -> bool | dict | int:
    """Create, show the status of, destroy or purge the specified queue."""
    click.echo(f"Queue {queue_name} {action}")
    dsn = get_dsn(dsn)

    pool = ConnectionPool(dsn, max_size=1)
    try:
        with pool.connection() as connection:
            channel = connection.channel()
            match action:
                case "create":
                    channel.queue_declare(queue=queue_name)
                    click.echo(f"Queue {queue_name} created")
                    return True
                case "status":
                    metrics = queue_status(channel, queue_name)
                    ic(metrics)
                    return metrics
                case "destroy":
                    channel.queue_delete(queue=queue_name)
                    click.echo(f"Queue {queue_name} destroyed")
                    return True
                case "purge":
                    purged = channel.queue_purge(queue=queue_name)
                    click.echo(f"Queue {queue_name} purged ({purged.method.message_count} messages)")
                    return purged.method.message_count
    except AcquireError as e:
        raise click.ClickException(f"Error connecting to broker: {e}") from e
    except ChannelClosedByBroker as e:
        if e.reply_code == NOT_FOUND:
            raise click.ClickException(f"Queue {queue_name} does not exist") from e
        raise click.ClickException(f"Error: {e.reply_text}") from e
    except AMQPError as e:
        raise click.ClickException(f"Error: {e!r}") from e
    finally:
        pool.close()


if __name__ == "__main__":
    main()
