"""Deterministic transaction identity and collision resolution.

A transaction id is the first 16 hex characters of the SHA-256 of
``"{effective_date}|{raw_description}|{amount}|{account_id}"``. The id does not
depend on the file name or on processing order, so the same purchase exported
twice gets the same id.

Repeats inside one file are legitimate (two identical coffees on one day) and
get ``-02``, ``-03``... suffixes. Repeats across files are overlapping export
windows and are dropped by :func:`deduplicate_batches`.
"""

import hashlib
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional

from finance_engine.domain.entities import DedupResult, Transaction
from finance_engine.domain.errors import CollisionOverflowError, collision_overflow
from finance_engine.domain.settings import (
    MAX_COLLISION_SUFFIX,
    TXN_ID_LENGTH,
    UNCATEGORIZED_CATEGORY_ID,
)
from finance_engine.utils.amount_parser import format_amount
from finance_engine.utils.normalize import normalize_description


def fingerprint(
    effective_date: date,
    raw_description: str,
    signed_amount: Decimal,
    account_id: int,
) -> str:
    """Return the 16-character hex fingerprint of a transaction.

    Args:
        effective_date: Date driving ordering and windowing
        raw_description: Verbatim description (never normalized here)
        signed_amount: Signed amount; trailing zeros do not affect the result
        account_id: Source account id

    Returns:
        Lowercase hex string of length 16
    """
    payload = "|".join(
        (
            effective_date.isoformat(),
            raw_description,
            format_amount(Decimal(signed_amount)),
            str(int(account_id)),
        )
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:TXN_ID_LENGTH]


def create_transaction(
    *,
    effective_date: date,
    raw_description: str,
    signed_amount: Decimal,
    account_id: int,
    txn_date: Optional[date] = None,
    post_date: Optional[date] = None,
    description: Optional[str] = None,
    raw_category: Optional[str] = None,
    source_file: str = "",
) -> Transaction:
    """Build a new uncategorized transaction with its fingerprint id.

    ``txn_date`` and ``post_date`` default to the effective date, and
    ``description`` defaults to the normalized raw description.
    """
    return Transaction(
        id=fingerprint(effective_date, raw_description, signed_amount, account_id),
        txn_date=txn_date or effective_date,
        post_date=post_date or effective_date,
        effective_date=effective_date,
        description=description if description is not None else normalize_description(raw_description),
        raw_description=raw_description,
        signed_amount=Decimal(signed_amount),
        account_id=int(account_id),
        source_file=source_file,
        category_id=UNCATEGORIZED_CATEGORY_ID,
        raw_category=raw_category,
    )


def base_id(txn_id: str) -> str:
    """Strip a ``-NN`` collision suffix from a transaction id."""
    return txn_id[:TXN_ID_LENGTH]


def resolve_collisions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Suffix repeated fingerprints within one batch.

    The first occurrence keeps the bare id; later ones get ``-02``, ``-03``...
    in encounter order. Input records are not modified.

    Raises:
        CollisionOverflowError: If one fingerprint repeats more than 99 times
    """
    seen: dict[str, int] = {}
    result: list[Transaction] = []

    for txn in transactions:
        count = seen.get(txn.id, 0) + 1
        seen[txn.id] = count
        if count == 1:
            result.append(replace(txn))
            continue
        if count > MAX_COLLISION_SUFFIX:
            raise CollisionOverflowError(collision_overflow(txn.id, MAX_COLLISION_SUFFIX))
        result.append(replace(txn, id=f"{txn.id}-{count:02d}"))

    return result


def build_collision_map(transactions: Iterable[Transaction]) -> dict[str, int]:
    """Return base id -> occurrence count for ids that collided."""
    counts: dict[str, int] = {}
    for txn in transactions:
        key = base_id(txn.id)
        counts[key] = counts.get(key, 0) + 1
    return {key: count for key, count in counts.items() if count > 1}


def deduplicate_batches(batches: Mapping[str, Sequence[Transaction]]) -> DedupResult:
    """Combine per-file batches into one list of unique transactions.

    Files are processed in lexicographic order of their names. Each file's
    collisions are resolved first, then any id already accepted from an
    earlier file is dropped as a cross-file duplicate (it is not re-suffixed).

    Args:
        batches: Mapping of source file name to that file's transactions

    Returns:
        DedupResult with the accepted transactions in processing order
    """
    accepted_ids: set[str] = set()
    unique: list[Transaction] = []
    duplicates = 0

    for name in sorted(batches):
        for txn in resolve_collisions(batches[name]):
            if txn.id in accepted_ids:
                duplicates += 1
                continue
            accepted_ids.add(txn.id)
            unique.append(txn)

    warnings: tuple[str, ...] = ()
    if duplicates > 0:
        warnings = (f"{duplicates} duplicate transactions removed across files.",)

    return DedupResult(
        transactions=tuple(unique),
        duplicates_removed=duplicates,
        collision_map=build_collision_map(unique),
        warnings=warnings,
    )
