"""Show the request a message would produce.

CLI that runs a message through the configured request builder without
touching the broker or sending anything.
"""

import click
from icecream import ic

from config import get_settings
from msg_bridge.cli.run import load_config
from msg_bridge.translation import RequestBuilder, decode


@click.command()
@click.option("--config", "config_file", type=str, required=False, help="Path to the YAML configuration file")
@click.option("--message", type=str, required=True, help="The queue message to translate")
def main(config_file: str | None, message: str) -> None:
    """Print the request the bridge would send for the given message."""
    cfg = load_config(config_file or get_settings().config_file)
    request = RequestBuilder(cfg.method, cfg.pattern).build(message.encode("utf-8"))
    if request is None:
        raise click.ClickException("could not build request")

    click.echo(f"{request.method.value} {request.url}")
    if request.body is not None:
        click.echo(request.body.decode("utf-8"))
    else:
        ic(decode(message))


if __name__ == "__main__":
    main()
