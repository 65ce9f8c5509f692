"""File adapters between on-disk inputs/outputs and the domain layer."""

from finance_engine.workspace.csv_import import import_transactions_csv
from finance_engine.workspace.config_files import (
    load_accounts,
    load_bank_category_map,
    load_payment_patterns,
    load_rules,
)
from finance_engine.workspace.export import (
    JOURNAL_FILE,
    MANIFEST_FILE,
    REVIEW_FILE,
    existing_outputs,
    hash_file,
    write_journal_csv,
    write_review_csv,
    write_run_manifest,
)

__all__ = [
    "JOURNAL_FILE",
    "MANIFEST_FILE",
    "REVIEW_FILE",
    "existing_outputs",
    "hash_file",
    "import_transactions_csv",
    "load_accounts",
    "load_bank_category_map",
    "load_payment_patterns",
    "load_rules",
    "write_journal_csv",
    "write_review_csv",
    "write_run_manifest",
]
