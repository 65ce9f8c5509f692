"""Checks applied to a candidate rule pattern before it is added."""

from collections.abc import Iterable, Sequence
from typing import Optional

from finance_engine.domain.categorizer import is_valid_pattern, matches_pattern
from finance_engine.domain.entities import (
    CollisionCheckResult,
    PatternType,
    PatternValidationResult,
    Rule,
    Transaction,
)
from finance_engine.domain.settings import PatternValidationConfig
from finance_engine.utils.normalize import normalize_description


def validate_pattern(
    pattern: str,
    pattern_type: PatternType = PatternType.SUBSTRING,
    transactions: Optional[Sequence[Transaction]] = None,
    config: PatternValidationConfig = PatternValidationConfig(),
) -> PatternValidationResult:
    """Validate a pattern before adding it as a rule.

    A pattern that is empty, too short or fails to compile is an error. When transactions
    are given, a pattern matching more than ``max_match_percent`` of them AND
    more than ``max_matches_for_broad`` of them is reported as too broad.

    Args:
        pattern: Pattern string
        pattern_type: Substring or regex
        transactions: Optional current batch for the breadth check
        config: Validation thresholds

    Returns:
        PatternValidationResult
    """
    pattern_type = PatternType(pattern_type)

    if not pattern or not pattern.strip():
        return PatternValidationResult(valid=False, errors=("Pattern cannot be empty",))

    if len(pattern) < config.min_length:
        return PatternValidationResult(
            valid=False,
            errors=(
                f"Pattern must be at least {config.min_length} characters (got {len(pattern)})",
            ),
        )

    if not is_valid_pattern(pattern, pattern_type):
        return PatternValidationResult(
            valid=False, errors=(f'Invalid regex syntax: "{pattern}"',)
        )

    if not transactions:
        return PatternValidationResult(valid=True)

    rule = Rule(pattern=pattern, category_id=0, pattern_type=pattern_type)
    match_count = 0
    for txn in transactions:
        matched, _ = matches_pattern(normalize_description(txn.raw_description), rule)
        if matched:
            match_count += 1

    match_percent = match_count / len(transactions)
    warnings: tuple[str, ...] = ()
    if (
        match_percent > config.max_match_percent
        and match_count > config.max_matches_for_broad
    ):
        warnings = (
            f'Pattern "{pattern}" is too broad: matches {match_count} transactions '
            f"({match_percent * 100:.1f}% > {config.max_match_percent * 100:g}%)",
        )

    return PatternValidationResult(
        valid=True,
        warnings=warnings,
        match_count=match_count,
        match_percent=match_percent,
    )


def check_pattern_collision(
    pattern: str,
    pattern_type: PatternType,
    existing_rules: Iterable[Rule],
) -> CollisionCheckResult:
    """Find existing rules whose patterns overlap a new pattern.

    Two substring patterns collide when one contains the other after
    normalization. Any two patterns with the same normalized text collide.
    """
    pattern_type = PatternType(pattern_type)
    normalized_new = normalize_description(pattern)
    colliding: list[str] = []

    for rule in existing_rules:
        normalized_existing = normalize_description(rule.pattern)
        both_substring = (
            pattern_type is PatternType.SUBSTRING
            and rule.pattern_type is PatternType.SUBSTRING
        )
        overlaps = both_substring and (
            normalized_new in normalized_existing or normalized_existing in normalized_new
        )
        if (overlaps or normalized_new == normalized_existing) and rule.pattern not in colliding:
            colliding.append(rule.pattern)

    return CollisionCheckResult(
        has_collision=bool(colliding), colliding_patterns=tuple(colliding)
    )
