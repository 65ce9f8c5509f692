"""Batch processing command."""

from pathlib import Path

import click

from finance_engine.cli.error_handling import handle_domain_error
from finance_engine.domain.errors import DomainError
from finance_engine.domain.pipeline import run_pipeline
from finance_engine.domain.settings import MatchConfig
from finance_engine.workspace import (
    JOURNAL_FILE,
    MANIFEST_FILE,
    REVIEW_FILE,
    existing_outputs,
    hash_file,
    import_transactions_csv,
    load_accounts,
    load_bank_category_map,
    load_payment_patterns,
    load_rules,
    write_journal_csv,
    write_review_csv,
    write_run_manifest,
)


@click.command("process")
@click.argument("csv_files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--accounts",
    "accounts_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    envvar="FINANCE_ENGINE_ACCOUNTS",
    help="Chart of accounts JSON file",
)
@click.option("--user-rules", type=click.Path(dir_okay=False), help="User rules YAML file")
@click.option("--shared-rules", type=click.Path(dir_okay=False), help="Shared rules YAML file")
@click.option(
    "--base-rules",
    type=click.Path(dir_okay=False),
    envvar="FINANCE_ENGINE_RULES",
    help="Base rules YAML file",
)
@click.option(
    "--patterns",
    "patterns_path",
    type=click.Path(exists=True, dir_okay=False),
    envvar="FINANCE_ENGINE_PATTERNS",
    help="Payment patterns YAML file",
)
@click.option(
    "--bank-categories",
    type=click.Path(exists=True, dir_okay=False),
    help="Institution category mapping YAML file",
)
@click.option("--date-tolerance", type=int, default=None, help="Payment match date tolerance in days (default 5)")
@click.option("--amount-tolerance", default=None, help="Payment match amount tolerance (default 0.01)")
@click.option("--starting-entry-id", type=int, default=1, show_default=True, help="First journal entry ID")
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False),
    help="Write journal.csv, review.csv and run_manifest.json to this directory",
)
@click.option("--dry-run", is_flag=True, help="Process and report without writing any files")
@click.option("--force", is_flag=True, help="Overwrite existing output and write even if the journal does not balance")
@click.pass_context
def process_files(
    ctx,
    csv_files: tuple[str, ...],
    accounts_path: str,
    user_rules: str | None,
    shared_rules: str | None,
    base_rules: str | None,
    patterns_path: str | None,
    bank_categories: str | None,
    date_tolerance: int | None,
    amount_tolerance: str | None,
    starting_entry_id: int,
    output_dir: str | None,
    dry_run: bool,
    force: bool,
):
    """Process normalized transaction CSV files into a journal.

    Files are deduplicated in file name order, categorized, matched
    (bank withdrawal <-> card payment) and posted as double-entry journal
    entries.

    With --output-dir the journal, the transactions needing review and a run
    manifest (input file hashes, transaction ids, collision map) are written.
    Existing output is only replaced with --force.

    Examples:
        finance-engine process checking.csv amex.csv --accounts accounts.json
        finance-engine process *.csv --accounts accounts.json --user-rules user-rules.yaml -o out/2026-01
        finance-engine process *.csv --accounts accounts.json -o out/2026-01 --dry-run
    """
    try:
        accounts = load_accounts(accounts_path)
        rules = load_rules(user_rules, shared_rules, base_rules)
        patterns = load_payment_patterns(patterns_path)
        bank_map = load_bank_category_map(bank_categories)
        match_config = MatchConfig.from_dict(
            {"date_tolerance_days": date_tolerance, "amount_tolerance": amount_tolerance}
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if output_dir and not dry_run and not force:
        found = existing_outputs(output_dir)
        if found:
            click.echo(
                f"Error: Output already exists in {output_dir} (found: {', '.join(found)}). "
                "Use --force to overwrite.",
                err=True,
            )
            ctx.exit(1)

    batches = {}
    input_hashes = {}
    for csv_file in csv_files:
        name = Path(csv_file).name
        if name in batches:
            click.echo(f"Error: Duplicate input file name '{name}'", err=True)
            ctx.exit(1)
        try:
            result = import_transactions_csv(csv_file)
        except DomainError as e:
            handle_domain_error(ctx, e)
            return
        for error in result["errors"]:
            click.echo(f"  {name}: {error}", err=True)
        batches[name] = result["transactions"]
        input_hashes[name] = hash_file(csv_file)

    try:
        result = run_pipeline(
            batches,
            rules,
            accounts,
            patterns=patterns,
            match_config=match_config,
            bank_category_map=bank_map,
            starting_entry_id=starting_entry_id,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    stats = result.categorization_stats
    match_stats = result.match_result.stats
    validation = result.ledger.validation

    click.echo("\nProcessing summary:")
    click.echo(f"  Transactions: {len(result.transactions)}")
    click.echo(f"  Duplicates removed: {result.duplicates_removed}")
    click.echo(
        "  Categorized: "
        + ", ".join(f"{source.value}={count}" for source, count in stats.by_source.items())
    )
    click.echo(f"  Payment matches: {match_stats.matches_found}")
    click.echo(f"  Journal entries: {result.ledger.stats.total_entries}")
    click.echo(f"  Total debits: {validation.total_debits}")
    click.echo(f"  Total credits: {validation.total_credits}")
    click.echo(f"  Needs review: {result.review_count}")

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    for error in result.errors:
        click.echo(f"Error: {error}", err=True)

    if result.errors and not force:
        ctx.exit(1)

    if dry_run:
        click.echo("Warning: Dry run: skipping file export.", err=True)
        return
    if not output_dir:
        return

    out = Path(output_dir)
    written = write_journal_csv(result.ledger.entries, out / JOURNAL_FILE)
    click.echo(f"Wrote {written} journal line(s) to {out / JOURNAL_FILE}")
    reviewed = write_review_csv(result.transactions, out / REVIEW_FILE)
    click.echo(f"Wrote {reviewed} review row(s) to {out / REVIEW_FILE}")
    write_run_manifest(out / MANIFEST_FILE, input_hashes, result.transactions, result.collision_map)
    click.echo(f"Wrote run manifest to {out / MANIFEST_FILE}")


def register_commands(cli):
    """Register process command with main CLI."""
    cli.add_command(process_files)
