"""Helpers shared by the CLI commands."""

import os

import click
import dotenv


def get_dsn(dsn: str | None) -> str:
    """Return the broker DSN from the argument, or QUEUE_DSN (loading .env if present)."""
    if dsn:
        return dsn
    if os.path.exists(".env"):
        dotenv.load_dotenv()
    dsn = os.getenv("QUEUE_DSN")
    if not dsn:
        raise click.ClickException("No DSN provided and QUEUE_DSN environment variable is not set")
    return dsn
