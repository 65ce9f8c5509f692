"""Rule pattern checking command."""

import click

from finance_engine.cli.error_handling import handle_domain_error
from finance_engine.domain.entities import PatternType
from finance_engine.domain.errors import DomainError
from finance_engine.domain.pattern_validation import check_pattern_collision, validate_pattern
from finance_engine.workspace import import_transactions_csv, load_rules


@click.command("check-rule")
@click.argument("pattern")
@click.option("--regex", is_flag=True, help="Treat PATTERN as a regular expression")
@click.option(
    "--against",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Transaction CSV file to measure how broad the pattern is (repeatable)",
)
@click.option(
    "--rules",
    "rules_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Existing rules YAML file to check for overlapping patterns (repeatable)",
)
@click.pass_context
def check_rule(ctx, pattern: str, regex: bool, against: tuple[str, ...], rules_files: tuple[str, ...]):
    """Check a pattern before adding it as a categorization rule.

    Examples:
        finance-engine check-rule "WHOLE FOODS"
        finance-engine check-rule "UBER.*EATS" --regex --against amex.csv
        finance-engine check-rule "STARBUCKS" --rules user-rules.yaml
    """
    pattern_type = PatternType.REGEX if regex else PatternType.SUBSTRING

    try:
        transactions = []
        for csv_file in against:
            transactions.extend(import_transactions_csv(csv_file)["transactions"])
        existing = []
        for rules_file in rules_files:
            existing.extend(load_rules(base_rules_path=rules_file).base_rules)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    result = validate_pattern(pattern, pattern_type, transactions)
    for error in result.errors:
        click.echo(f"Error: {error}", err=True)
    if not result.valid:
        ctx.exit(1)

    if result.match_count is not None:
        click.echo(
            f"Pattern matches {result.match_count} of {len(transactions)} transaction(s) "
            f"({result.match_percent * 100:.1f}%)"
        )
    for warning in result.warnings:
        click.echo(f"Warning: {warning}")

    collisions = check_pattern_collision(pattern, pattern_type, existing)
    if collisions.has_collision:
        click.echo("Overlaps existing patterns:")
        for colliding in collisions.colliding_patterns:
            click.echo(f"  {colliding}")

    click.echo(f"Pattern '{pattern}' is valid")


def register_commands(cli):
    """Register check-rule command with main CLI."""
    cli.add_command(check_rule)
