"""Double-entry journal generation.

Posting rules for a regular transaction, by source account type and sign:

    liability, positive (refund/reward)   DR liability   CR category
    liability, negative (charge)          DR category    CR liability
    asset, positive (deposit/income)      DR asset       CR category
    asset, negative (withdrawal/expense)  DR category    CR asset

A matched payment becomes one entry: DR each card account, CR the bank
account. The card side of the match produces no entry of its own.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Optional

from finance_engine.domain.accounts import AccountDirectory, account_type, resolve_account_name
from finance_engine.domain.entities import (
    AccountType,
    JournalEntry,
    JournalLine,
    LedgerResult,
    LedgerStats,
    Match,
    Transaction,
)
from finance_engine.domain.errors import (
    MatchAmountMismatchError,
    match_amount_mismatch,
    unexpected_source_account,
)
from finance_engine.domain.journal_validation import validate_journal


def _debit(account_id: int, name: str, amount: Decimal, txn_id: str) -> JournalLine:
    return JournalLine(account_id=account_id, account_name=name, debit=amount, credit=None, txn_id=txn_id)


def _credit(account_id: int, name: str, amount: Decimal, txn_id: str) -> JournalLine:
    return JournalLine(account_id=account_id, account_name=name, debit=None, credit=amount, txn_id=txn_id)


def generate_matched_payment_entry(
    match: Match,
    bank_txn: Transaction,
    cc_txns: Sequence[Transaction],
    entry_id: int,
    accounts: AccountDirectory,
) -> tuple[JournalEntry, list[str]]:
    """Build the single entry for a matched card payment.

    Raises:
        MatchAmountMismatchError: If the match amount differs from the bank
            amount or from the sum of the card amounts
    """
    warnings: list[str] = []
    amount = Decimal(match.amount)
    bank_amount = abs(bank_txn.signed_amount)
    cc_sum = sum((abs(t.signed_amount) for t in cc_txns), Decimal(0))

    if amount != bank_amount or amount != cc_sum:
        raise MatchAmountMismatchError(
            match_amount_mismatch(amount, bank_amount, cc_sum, bank_txn.id, [t.id for t in cc_txns])
        )

    lines: list[JournalLine] = []
    for cc_txn in cc_txns:
        name, warning = resolve_account_name(cc_txn.account_id, accounts)
        if warning:
            warnings.append(warning)
        lines.append(_debit(cc_txn.account_id, name, abs(cc_txn.signed_amount), cc_txn.id))

    name, warning = resolve_account_name(bank_txn.account_id, accounts)
    if warning:
        warnings.append(warning)
    lines.append(_credit(bank_txn.account_id, name, amount, bank_txn.id))

    entry = JournalEntry(
        entry_id=entry_id,
        date=bank_txn.effective_date,
        description=f"Payment match - {bank_txn.description}",
        lines=tuple(lines),
    )
    return entry, warnings


def generate_journal_entry(
    txn: Transaction,
    entry_id: int,
    accounts: AccountDirectory,
) -> tuple[Optional[JournalEntry], list[str]]:
    """Build the entry for a regular (unmatched) transaction.

    Returns:
        Tuple of (entry, warnings); the entry is None when the source account
        is not an asset or liability account
    """
    warnings: list[str] = []
    source_type = account_type(txn.account_id)
    if source_type not in (AccountType.ASSET, AccountType.LIABILITY):
        warnings.append(unexpected_source_account(txn.id, source_type.value))
        return None, warnings

    amount = abs(txn.signed_amount)

    source_name, warning = resolve_account_name(txn.account_id, accounts)
    if warning:
        warnings.append(warning)
    category_name, warning = resolve_account_name(txn.category_id, accounts)
    if warning:
        warnings.append(warning)

    # Same polarity for both account types: inflows debit the source account.
    if txn.is_inflow:
        lines = (
            _debit(txn.account_id, source_name, amount, txn.id),
            _credit(txn.category_id, category_name, amount, txn.id),
        )
    else:
        lines = (
            _debit(txn.category_id, category_name, amount, txn.id),
            _credit(txn.account_id, source_name, amount, txn.id),
        )

    entry = JournalEntry(
        entry_id=entry_id,
        date=txn.effective_date,
        description=txn.description,
        lines=lines,
    )
    return entry, warnings


class LedgerGenerator:
    """Turns categorized and matched transactions into journal entries."""

    def __init__(self, accounts: AccountDirectory):
        """Initialize ledger generator.

        Args:
            accounts: Chart of accounts, account id -> AccountInfo
        """
        self.accounts = accounts

    def generate(
        self,
        transactions: Iterable[Transaction],
        matches: Iterable[Match] = (),
        starting_entry_id: int = 1,
    ) -> LedgerResult:
        """Generate and validate a journal.

        Transactions are posted in (effective_date, id) order and entry ids
        are assigned sequentially from ``starting_entry_id``.

        Raises:
            MatchAmountMismatchError: If a match disagrees with its transactions
        """
        warnings: list[str] = []
        entries: list[JournalEntry] = []
        next_entry_id = starting_entry_id
        matched_entries = regular_entries = 0

        txns = list(transactions)
        txn_by_id = {t.id: t for t in txns}
        match_by_bank_id: dict[str, Match] = {}
        matched_ids: set[str] = set()
        for match in matches:
            match_by_bank_id[match.bank_txn_id] = match
            matched_ids.add(match.bank_txn_id)
            matched_ids.update(match.cc_txn_ids)

        for txn in sorted(txns, key=lambda t: (t.effective_date, t.id)):
            match = match_by_bank_id.get(txn.id)

            if match is None:
                if txn.id in matched_ids:
                    continue
                entry, entry_warnings = generate_journal_entry(txn, next_entry_id, self.accounts)
                warnings.extend(entry_warnings)
                if entry is not None:
                    entries.append(entry)
                    next_entry_id += 1
                    regular_entries += 1
                continue

            cc_txns = []
            for cc_id in match.cc_txn_ids:
                cc_txn = txn_by_id.get(cc_id)
                if cc_txn is None:
                    warnings.append(f"Match references unknown CC txn: {cc_id}")
                else:
                    cc_txns.append(cc_txn)
            if not cc_txns:
                continue

            entry, entry_warnings = generate_matched_payment_entry(
                match, txn, cc_txns, next_entry_id, self.accounts
            )
            warnings.extend(entry_warnings)
            entries.append(entry)
            next_entry_id += 1
            matched_entries += 1

        return LedgerResult(
            entries=tuple(entries),
            validation=validate_journal(entries),
            warnings=tuple(warnings),
            stats=LedgerStats(
                total_entries=len(entries),
                total_lines=sum(len(e.lines) for e in entries),
                matched_payment_entries=matched_entries,
                regular_entries=regular_entries,
            ),
        )


def generate_journal(
    transactions: Iterable[Transaction],
    matches: Iterable[Match],
    accounts: AccountDirectory,
    starting_entry_id: int = 1,
) -> LedgerResult:
    """Generate a journal. See :meth:`LedgerGenerator.generate`."""
    return LedgerGenerator(accounts).generate(transactions, matches, starting_entry_id)
