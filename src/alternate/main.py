"""CLI entrypoint for alternate."""

import sys

import rich_click as click

from alternate import __version__
from alternate.config import ConfigError
from alternate.controllers import AlternateCliController, RunCommand

click.rich_click.USE_MARKDOWN = True
CONTROLLER = AlternateCliController()

USAGE_EXAMPLE = 'alternate "/home/me/myserver 127.0.0.1:%alt" 3000 3001 10s'


@click.command(context_settings={"ignore_unknown_options": True})
@click.version_option(version=__version__, prog_name="alternate")
@click.option(
    "--placeholder",
    default=None,
    help="Token replaced by the rotated value. Defaults to ALTERNATE_PLACEHOLDER or %alt.",
)
@click.argument("arguments", nargs=-1, type=click.UNPROCESSED)
def alternate(placeholder: str | None, arguments: tuple[str, ...]) -> None:
    """Run COMMAND with rotating VALUES, overlapping old and new instances.

    Usage: `alternate COMMAND VALUE... OVERLAP`

    - **COMMAND**: command to run, with the placeholder standing for the rotated value.
    - **VALUE**: values to rotate through each time USR1 is received.
    - **OVERLAP**: delay between starting the next command and sending TERM to the
      previous one, e.g. `0`, `500ms`, `10s`, `1m30s`.

    TERM or INT stops every command and exits once they are gone.

    Example: `alternate "/home/me/myserver 127.0.0.1:%alt" 3000 3001 10s`
    """

    ctx = click.get_current_context()
    try:
        result = CONTROLLER.run(
            RunCommand(
                arguments=arguments,
                placeholder=placeholder,
                log_stream=sys.stderr,
                stdout=sys.stdout,
                stderr=sys.stderr,
            ),
        )
    except ConfigError as error:
        click.echo(f"{error}\n\nExample: {USAGE_EXAMPLE}\n\n{ctx.get_usage()}", err=True)
        ctx.exit(1)
    if result.exit_code != 0:
        ctx.exit(result.exit_code)


if __name__ == "__main__":  # pragma: no cover
    alternate()
