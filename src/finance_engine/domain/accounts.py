"""Account id ranges and chart of accounts lookups."""

from collections.abc import Mapping
from typing import Optional

from finance_engine.domain.entities import AccountInfo, AccountType
from finance_engine.domain.errors import unknown_account

# Inclusive id ranges per account type.
ACCOUNT_RANGES: dict[AccountType, tuple[int, int]] = {
    AccountType.ASSET: (1000, 1999),
    AccountType.LIABILITY: (2000, 2999),
    AccountType.INCOME: (3000, 3999),
    AccountType.EXPENSE: (4000, 4999),
    AccountType.SPECIAL: (5000, 9999),
}

AccountDirectory = Mapping[int, AccountInfo]


def account_type(account_id: int) -> AccountType:
    """Return the account type implied by an account id."""
    for kind, (low, high) in ACCOUNT_RANGES.items():
        if low <= account_id <= high:
            return kind
    return AccountType.UNKNOWN


def is_asset_account(account_id: int) -> bool:
    """Return True for checking/savings style accounts."""
    return account_type(account_id) is AccountType.ASSET


def is_liability_account(account_id: int) -> bool:
    """Return True for credit card style accounts."""
    return account_type(account_id) is AccountType.LIABILITY


def resolve_account_name(
    account_id: int, accounts: AccountDirectory
) -> tuple[str, Optional[str]]:
    """Look up an account name.

    Unknown accounts are never created; they get a placeholder name and a
    warning for the caller to surface.

    Returns:
        Tuple of (name, warning or None)
    """
    account = accounts.get(account_id)
    if account is not None:
        return account.name, None
    return f"Unknown ({account_id})", unknown_account(account_id)
