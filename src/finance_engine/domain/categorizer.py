"""Layered rule-based transaction categorization.

Layers are tried in order and the first match wins:

1. user rules (confidence 1.0)
2. shared rules (0.9)
3. base rules (0.8)
4. institution-provided category via a bank category map (0.6)
5. uncategorized fallback (0.3), flagged for review
"""

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from typing import Optional

from finance_engine.domain.entities import (
    BatchCategorization,
    CategorizationOutput,
    CategorizationResult,
    CategorizationStats,
    CategorySource,
    PatternType,
    Rule,
    RuleSet,
    Transaction,
)
from finance_engine.domain.errors import invalid_regex
from finance_engine.domain.settings import Confidence, UNCATEGORIZED_CATEGORY_ID
from finance_engine.utils.normalize import normalize_description

NO_RULE_MATCH = "no_rule_match"

BankCategoryMap = Mapping[str, int]


def matches_pattern(normalized_desc: str, rule: Rule) -> tuple[bool, Optional[str]]:
    """Match an already normalized description against one rule.

    Returns:
        Tuple of (matched, warning). An uncompilable regex never raises; it
        does not match and the warning names the pattern.
    """
    if rule.pattern_type is PatternType.REGEX:
        try:
            compiled = re.compile(rule.pattern, re.IGNORECASE)
        except re.error as e:
            return False, invalid_regex(rule.pattern, e)
        return compiled.search(normalized_desc) is not None, None

    return normalize_description(rule.pattern) in normalized_desc, None


def is_valid_pattern(pattern: str, pattern_type: PatternType = PatternType.SUBSTRING) -> bool:
    """Return True if the pattern can be used (regex patterns must compile)."""
    if PatternType(pattern_type) is PatternType.REGEX:
        try:
            re.compile(pattern)
        except re.error:
            return False
    return True


def guess_from_bank_category(
    raw_category: Optional[str], mapping: Optional[BankCategoryMap]
) -> Optional[int]:
    """Map an institution-provided category string to a category id.

    Tries an exact case-insensitive key first, then the first key (in the
    mapping's iteration order) where either string contains the other.
    """
    if not raw_category or not mapping:
        return None

    normalized = raw_category.upper().strip()
    if not normalized:
        return None

    keys = [(str(key).upper().strip(), category_id) for key, category_id in mapping.items()]
    for key, category_id in keys:
        if key == normalized:
            return category_id

    for key, category_id in keys:
        if key and (key in normalized or normalized in key):
            return category_id

    return None


class Categorizer:
    """Categorizes transactions against a fixed rule set."""

    def __init__(
        self,
        rules: RuleSet,
        bank_category_map: Optional[BankCategoryMap] = None,
        confidence: Confidence = Confidence(),
    ):
        """Initialize categorizer.

        Args:
            rules: Rule layers to apply
            bank_category_map: Optional institution category -> category id map
            confidence: Confidence per layer
        """
        self.rules = rules
        self.bank_category_map = bank_category_map or {}
        self.confidence = confidence

    def categorize(self, txn: Transaction) -> CategorizationOutput:
        """Categorize one transaction without modifying it."""
        warnings: list[str] = []
        desc = normalize_description(txn.raw_description)

        layers = (
            (self.rules.user_rules, CategorySource.USER, self.confidence.user_rules),
            (self.rules.shared_rules, CategorySource.SHARED, self.confidence.shared_rules),
            (self.rules.base_rules, CategorySource.BASE, self.confidence.base_rules),
        )
        for rules, source, confidence in layers:
            result = self._try_layer(desc, rules, source, confidence, warnings)
            if result is not None:
                return CategorizationOutput(result=result, warnings=tuple(warnings))

        category_id = guess_from_bank_category(txn.raw_category, self.bank_category_map)
        if category_id is not None:
            result = CategorizationResult(
                category_id=category_id,
                confidence=self.confidence.bank_category,
                source=CategorySource.BANK,
            )
            return CategorizationOutput(result=result, warnings=tuple(warnings))

        result = CategorizationResult(
            category_id=UNCATEGORIZED_CATEGORY_ID,
            confidence=self.confidence.uncategorized,
            source=CategorySource.UNCATEGORIZED,
            needs_review=True,
            review_reasons=(NO_RULE_MATCH,),
        )
        return CategorizationOutput(result=result, warnings=tuple(warnings))

    def categorize_all(self, transactions: Iterable[Transaction]) -> BatchCategorization:
        """Categorize a batch, returning new records, unique warnings and stats."""
        categorized: list[Transaction] = []
        warnings: dict[str, None] = {}
        by_source = {source: 0 for source in CategorySource}
        needs_review = 0

        for txn in transactions:
            output = self.categorize(txn)
            categorized.append(apply_categorization(txn, output.result))
            for warning in output.warnings:
                warnings.setdefault(warning, None)
            by_source[output.result.source] += 1
            if output.result.needs_review:
                needs_review += 1

        return BatchCategorization(
            transactions=tuple(categorized),
            warnings=tuple(warnings),
            stats=CategorizationStats(
                total=len(categorized),
                by_source=by_source,
                needs_review=needs_review,
            ),
        )

    @staticmethod
    def _try_layer(
        desc: str,
        rules: Sequence[Rule],
        source: CategorySource,
        confidence: float,
        warnings: list[str],
    ) -> Optional[CategorizationResult]:
        for rule in rules:
            matched, warning = matches_pattern(desc, rule)
            if warning:
                warnings.append(warning)
            if matched:
                return CategorizationResult(
                    category_id=rule.category_id,
                    confidence=confidence,
                    source=source,
                )
        return None


def apply_categorization(txn: Transaction, result: CategorizationResult) -> Transaction:
    """Return a copy of ``txn`` carrying the categorization result.

    Review reasons already on the transaction are kept; new ones are appended.
    """
    reasons = list(txn.review_reasons)
    for reason in result.review_reasons:
        if reason not in reasons:
            reasons.append(reason)
    return replace(
        txn,
        category_id=result.category_id,
        confidence=result.confidence,
        needs_review=txn.needs_review or result.needs_review,
        review_reasons=tuple(reasons),
    )


def categorize(
    txn: Transaction,
    rules: RuleSet,
    bank_category_map: Optional[BankCategoryMap] = None,
    confidence: Confidence = Confidence(),
) -> CategorizationOutput:
    """Categorize one transaction. See :class:`Categorizer`."""
    return Categorizer(rules, bank_category_map, confidence).categorize(txn)


def categorize_all(
    transactions: Iterable[Transaction],
    rules: RuleSet,
    bank_category_map: Optional[BankCategoryMap] = None,
    confidence: Confidence = Confidence(),
) -> BatchCategorization:
    """Categorize a batch. See :meth:`Categorizer.categorize_all`."""
    return Categorizer(rules, bank_category_map, confidence).categorize_all(transactions)
