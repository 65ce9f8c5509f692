"""Transaction fingerprint command."""

import click

from finance_engine.domain.identity import fingerprint
from finance_engine.utils.amount_parser import parse_amount
from finance_engine.utils.date_parser import parse_date


@click.command("fingerprint")
@click.argument("effective_date")
@click.argument("raw_description")
@click.argument("amount")
@click.argument("account_id", type=int)
@click.pass_context
def fingerprint_transaction(ctx, effective_date: str, raw_description: str, amount: str, account_id: int):
    """Print the transaction ID for one transaction.

    RAW_DESCRIPTION is hashed exactly as given.

    Examples:
        finance-engine fingerprint 2026-01-15 "CHIPOTLE 1234" -- -15.42 2122
    """
    try:
        txn_id = fingerprint(
            parse_date(effective_date), raw_description, parse_amount(amount), account_id
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    click.echo(txn_id)


def register_commands(cli):
    """Register fingerprint command with main CLI."""
    cli.add_command(fingerprint_transaction)
