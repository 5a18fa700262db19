"""Click entry point that serves the relay with uvicorn."""

from __future__ import annotations

import logging

import click
import uvicorn

from src.config import LOG_LEVELS, ConfigError, load_config
from src.proxy.app import create_app


@click.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Interface to bind.")
@click.option("--port", type=int, default=None, help="Port to bind (default: $PORT or 3000).")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level (default: $LOG_LEVEL or INFO).",
)
def main(host: str, port: int | None, log_level: str | None) -> None:
    """Relay alerts and messages to WeCom group robot webhooks."""
    try:
        config = load_config()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    level = (log_level or config.log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info(
        "Relaying to %d webhook target(s): %s",
        len(config.targets), ", ".join(sorted(config.targets)),
    )
    uvicorn.run(
        create_app(config),
        host=host,
        port=port if port is not None else config.port,
        log_level=level.lower(),
    )


if __name__ == "__main__":
    main()
