"""Processing pipeline: dedup -> categorize -> match -> journal -> validate.

Each stage is a pure function of the previous stage's output. The pipeline
only sequences them, applies the review updates proposed by the matcher, and
collects diagnostics. Construction errors (collision overflow, match amount
mismatch) propagate to the caller.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

from finance_engine.domain.accounts import AccountDirectory
from finance_engine.domain.categorizer import BankCategoryMap, Categorizer
from finance_engine.domain.entities import (
    CategorizationStats,
    LedgerResult,
    MatchResult,
    PaymentPattern,
    RuleSet,
    Transaction,
)
from finance_engine.domain.identity import deduplicate_batches
from finance_engine.domain.ledger import LedgerGenerator
from finance_engine.domain.matcher import PaymentMatcher, apply_review_updates, exact_matches
from finance_engine.domain.settings import Confidence, MatchConfig
from finance_engine.logging_setup import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Everything a processing run produced."""

    transactions: tuple[Transaction, ...]
    duplicates_removed: int
    collision_map: Mapping[str, int]
    categorization_stats: CategorizationStats
    match_result: MatchResult
    ledger: LedgerResult
    warnings: tuple[str, ...]
    errors: tuple[str, ...]

    @property
    def ok(self) -> bool:
        """Return True when the run produced a valid journal and no errors."""
        return not self.errors and self.ledger.validation.valid

    @property
    def review_count(self) -> int:
        """Number of transactions flagged for manual review."""
        return sum(1 for t in self.transactions if t.needs_review)


def run_pipeline(
    batches: Mapping[str, Sequence[Transaction]],
    rules: RuleSet,
    accounts: AccountDirectory,
    patterns: Sequence[PaymentPattern] = (),
    match_config: MatchConfig = MatchConfig(),
    bank_category_map: Optional[BankCategoryMap] = None,
    confidence: Confidence = Confidence(),
    starting_entry_id: int = 1,
) -> PipelineResult:
    """Run every stage over a set of per-file transaction batches.

    Args:
        batches: Source file name -> transactions parsed from that file
        rules: Categorization rule layers
        accounts: Chart of accounts
        patterns: Payment patterns for bank/card matching
        match_config: Matching tolerances
        bank_category_map: Optional institution category mapping
        confidence: Confidence per categorization layer
        starting_entry_id: First journal entry id

    Returns:
        PipelineResult

    Raises:
        CollisionOverflowError: If a file repeats one fingerprint too often
        MatchAmountMismatchError: If a match cannot be posted consistently
    """
    warnings: list[str] = []
    errors: list[str] = []

    dedup = deduplicate_batches(batches)
    warnings.extend(dedup.warnings)
    logger.info(
        "Deduplicated %d file(s): %d transaction(s), %d duplicate(s) removed",
        len(batches),
        len(dedup.transactions),
        dedup.duplicates_removed,
    )

    categorized = Categorizer(rules, bank_category_map, confidence).categorize_all(
        dedup.transactions
    )
    warnings.extend(categorized.warnings)
    logger.debug("Categorization stats: %s", categorized.stats)

    match_result = PaymentMatcher(patterns, match_config).match(categorized.transactions)
    warnings.extend(match_result.warnings)
    transactions = apply_review_updates(categorized.transactions, match_result.review_updates)
    logger.info(
        "Matched %d payment(s) from %d bank candidate(s)",
        match_result.stats.matches_found,
        match_result.stats.bank_candidates,
    )

    postable = exact_matches(match_result, transactions)
    skipped = len(match_result.matches) - len(postable)
    if skipped:
        warnings.append(
            f"{skipped} payment match(es) differ in amount and were posted as separate entries."
        )

    ledger = LedgerGenerator(accounts).generate(transactions, postable, starting_entry_id)
    warnings.extend(ledger.warnings)
    logger.info(
        "Generated %d journal entr(ies), %d line(s)",
        ledger.stats.total_entries,
        ledger.stats.total_lines,
    )

    review_count = sum(1 for t in transactions if t.needs_review)
    if review_count:
        warnings.append(f"{review_count} transactions flagged for manual review.")

    if not ledger.validation.valid:
        errors.extend(ledger.validation.errors)
        logger.error("Journal validation failed: difference %s", ledger.validation.difference)

    if not transactions:
        errors.append("No transactions were processed.")

    return PipelineResult(
        transactions=tuple(transactions),
        duplicates_removed=dedup.duplicates_removed,
        collision_map=dedup.collision_map,
        categorization_stats=categorized.stats,
        match_result=match_result,
        ledger=ledger,
        warnings=tuple(warnings),
        errors=tuple(errors),
    )
