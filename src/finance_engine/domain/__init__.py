"""Domain layer for finance_engine."""

from finance_engine.domain.identity import (
    fingerprint,
    create_transaction,
    resolve_collisions,
    deduplicate_batches,
)
from finance_engine.domain.categorizer import Categorizer, categorize, categorize_all
from finance_engine.domain.matcher import PaymentMatcher, match_payments, apply_review_updates
from finance_engine.domain.ledger import LedgerGenerator, generate_journal
from finance_engine.domain.journal_validation import validate_entry, validate_journal
from finance_engine.domain.pipeline import PipelineResult, run_pipeline

__all__ = [
    "fingerprint",
    "create_transaction",
    "resolve_collisions",
    "deduplicate_batches",
    "Categorizer",
    "categorize",
    "categorize_all",
    "PaymentMatcher",
    "match_payments",
    "apply_review_updates",
    "LedgerGenerator",
    "generate_journal",
    "validate_entry",
    "validate_journal",
    "PipelineResult",
    "run_pipeline",
]
