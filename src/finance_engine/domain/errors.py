"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested input file or entity does not exist."""


class CollisionOverflowError(DomainError):
    """Too many transactions in one batch share a fingerprint."""


class MatchAmountMismatchError(DomainError):
    """A payment match disagrees with the amounts of its transactions."""


def collision_overflow(base_id: str, limit: int) -> str:
    """Return message when a fingerprint exceeds the suffix range."""
    return f"Collision overflow: {base_id} has reached max limit of {limit} duplicates"


def match_amount_mismatch(
    match_amount: Decimal,
    bank_amount: Decimal,
    cc_sum: Decimal,
    bank_txn_id: str,
    cc_txn_ids: list[str],
) -> str:
    """Return message for a match whose amounts do not agree."""
    return (
        f"Match amount mismatch: match={match_amount}, bank={bank_amount}, "
        f"ccSum={cc_sum}. Transactions: {bank_txn_id}, CCs: [{', '.join(cc_txn_ids)}]"
    )


def unknown_account(account_id: int) -> str:
    """Return message for an account id missing from the directory."""
    return f"Unknown account ID: {account_id}"


def invalid_regex(pattern: str, error: Exception) -> str:
    """Return message for a regex rule that does not compile."""
    return f'Invalid regex pattern "{pattern}": {error}'


def unexpected_source_account(txn_id: str, account_type: str) -> str:
    """Return message when a transaction cannot be posted from its account."""
    return f"Unexpected source account type for txn {txn_id}: {account_type}"


def file_not_found(kind: str, path: str) -> str:
    """Return message for a missing input file."""
    return f"{kind} file not found: {path}"
