"""Loaders for rule files, the chart of accounts and payment patterns."""

import json
from pathlib import Path
from typing import Any, Optional

import yaml

from finance_engine.domain.entities import AccountInfo, AccountType, PaymentPattern, Rule, RuleSet
from finance_engine.domain.errors import NotFoundError, ValidationError, file_not_found
from finance_engine.logging_setup import get_logger

logger = get_logger(__name__)


def _read_yaml(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {path}: {e}")


def load_rule_file(path: Optional[str | Path]) -> tuple[Rule, ...]:
    """Load one rule layer.

    The file holds either a list of rules or ``{rules: [...]}``. A missing
    path or file means an empty layer.
    """
    if path is None:
        return ()
    rule_path = Path(path)
    if not rule_path.exists():
        logger.debug("Rule file %s not found, using empty layer", rule_path)
        return ()

    data = _read_yaml(rule_path)
    if not data:
        return ()
    if isinstance(data, dict):
        data = data.get("rules") or []
    if not isinstance(data, list):
        raise ValidationError(f"Rule file {rule_path} must contain a list of rules")

    rules = []
    for index, item in enumerate(data, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Rule {index} in {rule_path} is not a mapping")
        try:
            rules.append(Rule.from_dict(item))
        except ValueError as e:
            raise ValidationError(f"Invalid rule {index} in {rule_path}: {e}")
    return tuple(rules)


def load_rules(
    user_rules_path: Optional[str | Path] = None,
    shared_rules_path: Optional[str | Path] = None,
    base_rules_path: Optional[str | Path] = None,
) -> RuleSet:
    """Load the three rule layers into a RuleSet."""
    return RuleSet(
        user_rules=load_rule_file(user_rules_path),
        shared_rules=load_rule_file(shared_rules_path),
        base_rules=load_rule_file(base_rules_path),
    )


def load_accounts(path: str | Path) -> dict[int, AccountInfo]:
    """Load a chart of accounts from JSON.

    Expected shape: ``{"accounts": {"1120": {"name": "...", "type": "asset"}}}``.

    Raises:
        NotFoundError: If the file doesn't exist
        ValidationError: If the file is malformed
    """
    accounts_path = Path(path)
    if not accounts_path.exists():
        raise NotFoundError(file_not_found("Accounts", str(path)))

    with open(accounts_path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {accounts_path}: {e}")

    raw_accounts = data.get("accounts") if isinstance(data, dict) else None
    if not isinstance(raw_accounts, dict):
        raise ValidationError(f"Accounts file {accounts_path} must contain an 'accounts' mapping")

    accounts = {}
    for key, value in raw_accounts.items():
        try:
            account_id = int(key)
            account = AccountInfo(
                id=account_id,
                name=str(value["name"]),
                type=AccountType(value["type"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid account '{key}' in {accounts_path}: {e}")
        accounts[account_id] = account
    return accounts


def load_payment_patterns(path: Optional[str | Path]) -> tuple[PaymentPattern, ...]:
    """Load payment patterns from YAML.

    Each item has ``keywords`` (list), ``card_identifier`` and ``accounts``
    (list of card account ids). The file holds a list or ``{patterns: [...]}``.
    """
    if path is None:
        return ()
    patterns_path = Path(path)
    if not patterns_path.exists():
        raise NotFoundError(file_not_found("Payment patterns", str(path)))

    data = _read_yaml(patterns_path) or []
    if isinstance(data, dict):
        data = data.get("patterns") or []
    if not isinstance(data, list):
        raise ValidationError(f"Payment pattern file {patterns_path} must contain a list")

    patterns = []
    for index, item in enumerate(data, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Payment pattern {index} in {patterns_path} is not a mapping")
        keywords = item.get("keywords")
        if not isinstance(keywords, list):
            raise ValidationError(
                f"Payment pattern {index} in {patterns_path}: keywords must be a list, "
                f"got {type(keywords).__name__}"
            )
        try:
            patterns.append(
                PaymentPattern(
                    keywords=frozenset(str(k).upper() for k in keywords),
                    card_identifier=str(item["card_identifier"]),
                    eligible_accounts=tuple(int(a) for a in item.get("accounts", [])),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid payment pattern {index} in {patterns_path}: {e}")
    return tuple(patterns)


def load_bank_category_map(path: Optional[str | Path]) -> dict[str, int]:
    """Load an institution category -> category id mapping from YAML.

    File order is kept, since the first partially matching key wins.
    """
    if path is None:
        return {}
    map_path = Path(path)
    if not map_path.exists():
        raise NotFoundError(file_not_found("Bank category map", str(path)))

    data = _read_yaml(map_path) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"Bank category map {map_path} must be a mapping")
    try:
        return {str(key).upper().strip(): int(value) for key, value in data.items()}
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid bank category map {map_path}: {e}")
