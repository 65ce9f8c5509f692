"""Domain model entities for finance_engine.

These are pure data classes shared by every processing stage. Stages never
mutate them; they build new instances with ``dataclasses.replace`` instead, so
a batch can be re-run or replayed through any single stage.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from finance_engine.domain.errors import ValidationError
from finance_engine.domain.settings import UNCATEGORIZED_CATEGORY_ID


class AccountType(str, Enum):
    """Account classification implied by the account id range."""

    ASSET = "asset"
    LIABILITY = "liability"
    INCOME = "income"
    EXPENSE = "expense"
    SPECIAL = "special"
    UNKNOWN = "unknown"


class PatternType(str, Enum):
    """How a rule pattern is compared with a description."""

    SUBSTRING = "substring"
    REGEX = "regex"


class CategorySource(str, Enum):
    """Layer that produced a categorization."""

    USER = "user"
    SHARED = "shared"
    BASE = "base"
    BANK = "bank"
    UNCATEGORIZED = "uncategorized"


@dataclass(frozen=True)
class Transaction:
    """Normalized bank or card line item."""

    id: str
    txn_date: date
    post_date: date
    effective_date: date
    description: str
    raw_description: str
    signed_amount: Decimal
    account_id: int
    source_file: str = ""
    category_id: int = UNCATEGORIZED_CATEGORY_ID
    raw_category: Optional[str] = None
    confidence: float = 0.0
    needs_review: bool = False
    review_reasons: tuple[str, ...] = ()

    @property
    def is_outflow(self) -> bool:
        """Return True for a negative (money out) amount."""
        return self.signed_amount < 0

    @property
    def is_inflow(self) -> bool:
        """Return True for a positive (money in) amount."""
        return self.signed_amount > 0


@dataclass(frozen=True)
class Rule:
    """Categorization rule mapping a description pattern to a category."""

    pattern: str
    category_id: int
    pattern_type: PatternType = PatternType.SUBSTRING
    note: Optional[str] = None
    added_date: Optional[date] = None
    source: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.pattern or not self.pattern.strip():
            raise ValidationError("Rule pattern cannot be empty")
        if not isinstance(self.pattern_type, PatternType):
            try:
                object.__setattr__(self, "pattern_type", PatternType(self.pattern_type))
            except ValueError:
                raise ValidationError(
                    f"Unknown pattern_type '{self.pattern_type}' for pattern '{self.pattern}'"
                )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        """Build a rule from a loosely typed mapping (e.g. parsed YAML).

        A missing ``pattern_type`` means substring matching.
        """
        if "pattern" not in data or "category_id" not in data:
            raise ValidationError(f"Rule requires 'pattern' and 'category_id': {dict(data)}")
        try:
            category_id = int(data["category_id"])
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid category_id in rule: {data['category_id']!r}")
        added = data.get("added_date")
        if isinstance(added, str):
            added = date.fromisoformat(added)
        return cls(
            pattern=str(data["pattern"]),
            category_id=category_id,
            pattern_type=data.get("pattern_type") or PatternType.SUBSTRING,
            note=data.get("note"),
            added_date=added,
            source=data.get("source"),
        )


@dataclass(frozen=True)
class RuleSet:
    """Three rule layers, tried in priority order user -> shared -> base."""

    user_rules: tuple[Rule, ...] = ()
    shared_rules: tuple[Rule, ...] = ()
    base_rules: tuple[Rule, ...] = ()

    def __post_init__(self) -> None:
        for name in ("user_rules", "shared_rules", "base_rules"):
            object.__setattr__(self, name, tuple(getattr(self, name)))


@dataclass(frozen=True)
class PaymentPattern:
    """Recognizes a bank statement line as a credit card payment."""

    keywords: frozenset[str]
    card_identifier: str
    eligible_accounts: tuple[int, ...]

    def __post_init__(self) -> None:
        # A bare string would otherwise be split into one-letter keywords.
        if not isinstance(self.keywords, (list, tuple, set, frozenset)):
            raise ValidationError(
                f"Payment pattern keywords for '{self.card_identifier}' must be a list, "
                f"got {type(self.keywords).__name__}"
            )
        object.__setattr__(self, "keywords", frozenset(self.keywords))
        object.__setattr__(self, "eligible_accounts", tuple(self.eligible_accounts))
        if not self.keywords:
            raise ValidationError(
                f"Payment pattern for '{self.card_identifier}' needs at least one keyword"
            )
        if not self.card_identifier or not self.card_identifier.strip():
            raise ValidationError("Payment pattern card_identifier cannot be empty")


@dataclass(frozen=True)
class Match:
    """Pairing of one bank withdrawal with one or more card payments."""

    bank_txn_id: str
    cc_txn_ids: tuple[str, ...]
    amount: Decimal
    date_diff_days: int


@dataclass(frozen=True)
class ReviewUpdate:
    """Review flag change proposed by a stage and applied by the caller."""

    txn_id: str
    needs_review: bool
    reasons_to_add: tuple[str, ...]


@dataclass(frozen=True)
class AccountInfo:
    """Chart of accounts entry."""

    id: int
    name: str
    type: AccountType


@dataclass(frozen=True)
class JournalLine:
    """One debit or credit leg of a journal entry."""

    account_id: int
    account_name: str
    debit: Optional[Decimal]
    credit: Optional[Decimal]
    txn_id: str

    def __post_init__(self) -> None:
        if (self.debit is None) == (self.credit is None):
            raise ValidationError(
                f"Journal line for account {self.account_id} must have exactly one of debit/credit"
            )


@dataclass(frozen=True)
class JournalEntry:
    """Balanced set of lines describing one economic event."""

    entry_id: int
    date: date
    description: str
    lines: tuple[JournalLine, ...]


@dataclass(frozen=True)
class CategorizationResult:
    """Outcome of categorizing one transaction."""

    category_id: int
    confidence: float
    source: CategorySource
    needs_review: bool = False
    review_reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class CategorizationOutput:
    """Categorization result plus non-fatal warnings."""

    result: CategorizationResult
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class CategorizationStats:
    """Per-source counts for a categorized batch."""

    total: int
    by_source: Mapping[CategorySource, int]
    needs_review: int


@dataclass(frozen=True)
class BatchCategorization:
    """Categorized batch with deduplicated warnings and stats."""

    transactions: tuple[Transaction, ...]
    warnings: tuple[str, ...]
    stats: CategorizationStats


@dataclass(frozen=True)
class MatchStats:
    """Counters describing a payment matching run."""

    bank_candidates: int = 0
    cc_candidates: int = 0
    matches_found: int = 0
    ambiguous_flagged: int = 0
    partial_payment_flagged: int = 0
    no_candidate_flagged: int = 0


@dataclass(frozen=True)
class MatchResult:
    """Matches and review flag descriptors produced by the payment matcher."""

    matches: tuple[Match, ...]
    review_updates: tuple[ReviewUpdate, ...]
    warnings: tuple[str, ...]
    stats: MatchStats


@dataclass(frozen=True)
class EntryValidation:
    """Balance check for a single journal entry."""

    valid: bool
    debit_total: Decimal
    credit_total: Decimal
    error: Optional[str] = None


@dataclass(frozen=True)
class JournalValidationResult:
    """Balance check for a whole journal."""

    valid: bool
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class LedgerStats:
    """Counters describing a generated journal."""

    total_entries: int = 0
    total_lines: int = 0
    matched_payment_entries: int = 0
    regular_entries: int = 0


@dataclass(frozen=True)
class LedgerResult:
    """Generated journal with its validation result."""

    entries: tuple[JournalEntry, ...]
    validation: JournalValidationResult
    warnings: tuple[str, ...]
    stats: LedgerStats


@dataclass(frozen=True)
class DedupResult:
    """Transactions surviving intra-file suffixing and cross-file dedup."""

    transactions: tuple[Transaction, ...]
    duplicates_removed: int
    collision_map: Mapping[str, int] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class PatternValidationResult:
    """Outcome of checking a candidate rule pattern."""

    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    match_count: Optional[int] = None
    match_percent: Optional[float] = None


@dataclass(frozen=True)
class CollisionCheckResult:
    """Existing rule patterns that overlap a candidate pattern."""

    has_collision: bool
    colliding_patterns: tuple[str, ...] = ()
