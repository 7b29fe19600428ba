"""formtree CLI entry point."""

import logging

import click


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    envvar="FORMTREE_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (env: FORMTREE_LOG_LEVEL).",
)
def cli(log_level: str):
    """formtree: form validation engine developer tools."""
    logging.basicConfig(level=getattr(logging, log_level.upper()), format="%(levelname)s %(name)s: %(message)s")


# Register subcommand groups
from formtree.cli.rules_cmd import rules  # noqa: E402

cli.add_command(rules)
