"""Exact balance checks for journal entries."""

from collections.abc import Iterable
from decimal import Decimal

from finance_engine.domain.entities import EntryValidation, JournalEntry, JournalValidationResult


def validate_entry(entry: JournalEntry) -> EntryValidation:
    """Check that an entry's debits equal its credits exactly."""
    debit_total = Decimal(0)
    credit_total = Decimal(0)
    malformed = []

    for line in entry.lines:
        if (line.debit is None) == (line.credit is None):
            malformed.append(line.account_id)
        if line.debit is not None:
            debit_total += Decimal(line.debit)
        if line.credit is not None:
            credit_total += Decimal(line.credit)

    if malformed:
        return EntryValidation(
            valid=False,
            debit_total=debit_total,
            credit_total=credit_total,
            error=(
                f"Entry {entry.entry_id} has lines without exactly one of debit/credit: "
                f"accounts {malformed}"
            ),
        )

    if debit_total != credit_total:
        return EntryValidation(
            valid=False,
            debit_total=debit_total,
            credit_total=credit_total,
            error=(
                f"Entry {entry.entry_id} unbalanced: debits={debit_total}, credits={credit_total}"
            ),
        )

    return EntryValidation(valid=True, debit_total=debit_total, credit_total=credit_total)


def validate_journal(entries: Iterable[JournalEntry]) -> JournalValidationResult:
    """Check every entry and the journal totals.

    Never raises for an unbalanced journal; the caller decides whether
    ``valid=False`` is fatal.
    """
    errors: list[str] = []
    warnings: list[str] = []
    total_debits = Decimal(0)
    total_credits = Decimal(0)
    count = 0

    for entry in entries:
        count += 1
        result = validate_entry(entry)
        if not result.valid and result.error:
            errors.append(result.error)
        total_debits += result.debit_total
        total_credits += result.credit_total

    if count == 0:
        warnings.append("Journal has no entries")

    difference = abs(total_debits - total_credits)
    if difference != 0:
        errors.append(
            f"Journal unbalanced: total debits={total_debits}, "
            f"total credits={total_credits}, difference={difference}"
        )

    return JournalValidationResult(
        valid=not errors,
        total_debits=total_debits,
        total_credits=total_credits,
        difference=difference,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )
