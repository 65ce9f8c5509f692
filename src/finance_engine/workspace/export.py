"""Journal, review and run manifest export."""

import csv
import hashlib
import json
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from finance_engine import __version__
from finance_engine.domain.entities import JournalEntry, Transaction
from finance_engine.utils.amount_parser import format_amount

JOURNAL_FILE = "journal.csv"
REVIEW_FILE = "review.csv"
MANIFEST_FILE = "run_manifest.json"

# Files whose presence means a directory already holds a processed run.
OUTPUT_FILES = (MANIFEST_FILE, JOURNAL_FILE, REVIEW_FILE)

JOURNAL_COLUMNS = (
    "entry_id",
    "date",
    "description",
    "account_id",
    "account_name",
    "debit",
    "credit",
    "txn_id",
)

REVIEW_COLUMNS = (
    "date",
    "description",
    "amount",
    "account_id",
    "category_id",
    "confidence",
    "review_reasons",
    "source_file",
    "txn_id",
)


def write_journal_csv(entries: Iterable[JournalEntry], path: str | Path) -> int:
    """Write one CSV row per journal line.

    Returns:
        Number of lines written
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    written = 0
    with open(output_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(JOURNAL_COLUMNS)
        for entry in entries:
            for line in entry.lines:
                writer.writerow(
                    (
                        entry.entry_id,
                        entry.date.isoformat(),
                        entry.description,
                        line.account_id,
                        line.account_name,
                        format_amount(line.debit) if line.debit is not None else "",
                        format_amount(line.credit) if line.credit is not None else "",
                        line.txn_id,
                    )
                )
                written += 1
    return written


def write_review_csv(transactions: Iterable[Transaction], path: str | Path) -> int:
    """Write the transactions flagged for manual review.

    Reasons are joined with ``", "``. Transactions without the review flag
    are left out.

    Returns:
        Number of transactions written
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    written = 0
    with open(output_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(REVIEW_COLUMNS)
        for txn in transactions:
            if not txn.needs_review:
                continue
            writer.writerow(
                (
                    txn.effective_date.isoformat(),
                    txn.description,
                    format_amount(txn.signed_amount),
                    txn.account_id,
                    txn.category_id,
                    txn.confidence,
                    ", ".join(txn.review_reasons),
                    txn.source_file,
                    txn.id,
                )
            )
            written += 1
    return written


def hash_file(path: str | Path) -> str:
    """Return ``sha256:<hex>`` for a file's contents."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return f"sha256:{digest.hexdigest()}"


def build_run_manifest(
    input_files: Mapping[str, str],
    transactions: Iterable[Transaction],
    collision_map: Mapping[str, int],
    run_timestamp: Optional[datetime] = None,
) -> dict[str, Any]:
    """Describe a processing run.

    Args:
        input_files: Source file name -> content hash
        transactions: Transactions that survived deduplication
        collision_map: Base id -> occurrence count for suffixed ids
        run_timestamp: Defaults to now (UTC)

    Returns:
        JSON-serializable manifest dict
    """
    txn_ids = [t.id for t in transactions]
    timestamp = run_timestamp or datetime.now(timezone.utc)
    return {
        "run_timestamp": timestamp.isoformat(),
        "input_files": {name: input_files[name] for name in sorted(input_files)},
        "transaction_count": len(txn_ids),
        "txn_ids": txn_ids,
        "collision_map": dict(collision_map),
        "version": __version__,
    }


def write_run_manifest(
    path: str | Path,
    input_files: Mapping[str, str],
    transactions: Iterable[Transaction],
    collision_map: Mapping[str, int],
    run_timestamp: Optional[datetime] = None,
) -> dict[str, Any]:
    """Write the run manifest as indented JSON and return it."""
    manifest = build_run_manifest(input_files, transactions, collision_map, run_timestamp)
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2)
        f.write("\n")
    return manifest


def existing_outputs(output_dir: str | Path) -> list[str]:
    """Return the names of run output files already present in a directory."""
    directory = Path(output_dir)
    return [name for name in OUTPUT_FILES if (directory / name).exists()]
