"""Main CLI entry point."""

import click

from finance_engine.logging_setup import LOG_LEVEL_ENV, configure_logging

# Import and register all commands at module level
from finance_engine.cli.commands import process, fingerprint, check_rule


@click.group()
@click.option(
    "--log-level",
    help=f"Logging level, e.g. DEBUG or INFO (overrides {LOG_LEVEL_ENV} environment variable)",
    envvar=LOG_LEVEL_ENV,
)
@click.version_option(package_name="finance-engine")
@click.pass_context
def cli(ctx, log_level: str | None):
    """Finance Engine - categorize, match and post transactions.

    Turns normalized bank and credit card exports into a balanced
    double-entry journal.
    """
    ctx.ensure_object(dict)

    # Stay silent unless a level was asked for; results go through click.echo
    if ctx.invoked_subcommand is not None and log_level:
        configure_logging(log_level)


# Register all commands
process.register_commands(cli)
fingerprint.register_commands(cli)
check_rule.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
