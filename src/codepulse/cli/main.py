"""Click CLI entry point for CodePulse."""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from codepulse._version import __version__
from codepulse.core.output import error_console


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich; debug detail only when asked for."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=verbose, rich_tracebacks=verbose)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="codepulse")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """CodePulse - live codebase analysis with a self-healing feedback loop.

    Scan a source tree, see where it drifts from its core patterns, and
    track fixes until they land.
    """
    configure_logging(verbose)


# Import and register subcommands
from codepulse.cli.scan_cmd import scan  # noqa: E402
from codepulse.cli.prompt_cmd import prompt  # noqa: E402
from codepulse.cli.heal_cmd import heal  # noqa: E402
from codepulse.cli.history_cmd import history  # noqa: E402

cli.add_command(scan)
cli.add_command(prompt)
cli.add_command(heal)
cli.add_command(history)


if __name__ == "__main__":
    cli()
