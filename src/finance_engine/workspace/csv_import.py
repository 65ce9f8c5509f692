"""Import of normalized transaction CSV files."""

import csv
from pathlib import Path
from typing import Any

from finance_engine.domain.errors import NotFoundError, ValidationError, file_not_found
from finance_engine.domain.identity import create_transaction
from finance_engine.logging_setup import get_logger
from finance_engine.utils.amount_parser import parse_amount
from finance_engine.utils.date_parser import parse_date

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("effective_date", "raw_description", "signed_amount", "account_id")


def import_transactions_csv(csv_file_path: str | Path) -> dict[str, Any]:
    """Read transactions from a normalized CSV file.

    Required columns are ``effective_date``, ``raw_description``,
    ``signed_amount`` and ``account_id``. Optional columns are ``txn_date``,
    ``post_date``, ``description`` and ``raw_category``. Rows are returned in
    file order with fingerprint ids but without collision suffixes; those are
    assigned when batches are deduplicated.

    Args:
        csv_file_path: Path to CSV file

    Returns:
        Dict with import results:
        - transactions: list of Transaction
        - errors: list of row-level error messages

    Raises:
        NotFoundError: If the CSV file doesn't exist
        ValidationError: If required columns are missing
    """
    csv_path = Path(csv_file_path)
    if not csv_path.exists():
        raise NotFoundError(file_not_found("CSV", str(csv_file_path)))

    transactions = []
    errors = []

    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)

        columns = reader.fieldnames
        if columns is None:
            raise ValidationError(f"CSV file has no columns: {csv_path.name}")

        missing_columns = [col for col in REQUIRED_COLUMNS if col not in columns]
        if missing_columns:
            raise ValidationError(
                f"CSV file missing required columns: {', '.join(missing_columns)}"
            )

        for row_num, row in enumerate(reader, start=2):  # header is row 1
            values = {key: (value.strip() if value else None) for key, value in row.items() if key}

            try:
                effective_date = parse_date(values.get("effective_date") or "")
                amount = parse_amount(values.get("signed_amount") or "")
                account_text = values.get("account_id")
                if not account_text:
                    raise ValueError("Missing account_id")
                account_id = int(account_text)
                txn_date = parse_date(values["txn_date"]) if values.get("txn_date") else None
                post_date = parse_date(values["post_date"]) if values.get("post_date") else None
            except ValueError as e:
                errors.append(f"Row {row_num}: {e}")
                continue

            # The raw description is hashed verbatim, so it is not stripped.
            raw_description = row.get("raw_description") or ""
            if not raw_description.strip():
                errors.append(f"Row {row_num}: Missing raw_description")
                continue

            transactions.append(
                create_transaction(
                    effective_date=effective_date,
                    raw_description=raw_description,
                    signed_amount=amount,
                    account_id=account_id,
                    txn_date=txn_date,
                    post_date=post_date,
                    description=values.get("description"),
                    raw_category=values.get("raw_category"),
                    source_file=csv_path.name,
                )
            )

    logger.debug(
        "Read %d transaction(s) from %s (%d error(s))",
        len(transactions),
        csv_path.name,
        len(errors),
    )
    return {"transactions": transactions, "errors": errors}
