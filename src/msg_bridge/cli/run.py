"""Run the bridge.

This module provides a CLI that consumes messages from the configured queue,
turns each into an HTTP request and acknowledges it once the request was
sent. The process reconnects to the broker after every failure and only
exits when terminated or when its configuration is unusable.
"""

import logging
import os
from typing import Any

import click
import dotenv

from config import Config, ConfigError, get_settings
from msg_bridge.consumer import ConsumerDriver
from msg_bridge.dispatch import Dispatcher
from msg_bridge.pool import ConnectionPool
from msg_bridge.translation import RequestBuilder

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [bridge] %(levelname)s %(name)s %(message)s"


def load_config(config_file: str) -> Config:
    """Parse the configuration file, failing the command if it is unusable."""
    try:
        return Config.parse_from_file(config_file)
    except ConfigError as e:
        raise click.ClickException(f"{e}: {config_file}") from e


def build_driver(cfg: Config) -> ConsumerDriver:
    """Wire pool, request builder and dispatcher for the given configuration."""
    try:
        pool = ConnectionPool(cfg.queue_host, max_size=cfg.pool_size)
    except ValueError as e:
        raise click.ClickException(f"Invalid queueDSN: {e}") from e
    return ConsumerDriver(
        pool=pool,
        builder=RequestBuilder(cfg.method, cfg.pattern),
        dispatcher=Dispatcher(timeout=cfg.http_timeout),
        queue_name=cfg.queue_name,
        consumer_tag=cfg.consumer_tag,
        retry_interval=cfg.retry_interval,
    )


@click.command()
@click.option("--config", "config_file", type=str, required=False, help="Path to the YAML configuration file")
@click.option("--log-level", type=str, required=False, help="Logging level, e.g. DEBUG or INFO")
@click.option(
    "--max-attempts",
    type=int,
    default=None,
    hidden=True,
    help="Stop after this many consumption attempts instead of running forever",
)
def main(**kwargs: Any) -> None:
    """Consume the configured queue and forward each message over HTTP.

    The configuration file defaults to BRIDGE_CONFIG_FILE, or ./indexer.yml.
    """
    if os.path.exists(".env"):
        dotenv.load_dotenv()
    settings = get_settings()
    config_file = kwargs["config_file"] or settings.config_file
    log_level = (kwargs["log_level"] or settings.log_level).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise click.ClickException(f"Invalid log level: {log_level}")

    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    cfg = load_config(config_file)
    logger.info(
        "starting bridge: env=%s method=%s pattern=%s queue=%s",
        cfg.build_env,
        cfg.method.value,
        cfg.pattern,
        cfg.queue_name,
    )

    driver = build_driver(cfg)
    try:
        driver.run(max_attempts=kwargs["max_attempts"])
    finally:
        driver.pool.close()
        driver.dispatcher.close()


if __name__ == "__main__":
    main()
