"""Entry point for the chaindeck command-line interface."""

import click

from chaindeck import __version__
from chaindeck.cli.commands.migrate import forget, migrate, status


@click.group()
@click.version_option(__version__, prog_name="chaindeck")
def main() -> None:
    """chaindeck - deploy smart contracts once, resume where you left off.

    Commands:

        migrate  Deploy every step of a migration plan

        status   Show cached deployment state

        forget   Clear the cached state of one deployment
    """


main.add_command(migrate)
main.add_command(status)
main.add_command(forget)


if __name__ == "__main__":
    main()
