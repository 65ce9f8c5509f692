"""Immutable configuration values passed explicitly into each stage."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from finance_engine.domain.errors import ValidationError

# Category id for uncategorized transactions; never 4990 (Miscellaneous).
UNCATEGORIZED_CATEGORY_ID = 4999

TXN_ID_LENGTH = 16
MAX_COLLISION_SUFFIX = 99


@dataclass(frozen=True)
class Confidence:
    """Confidence assigned per categorization source."""

    user_rules: float = 1.0
    shared_rules: float = 0.9
    base_rules: float = 0.8
    bank_category: float = 0.6
    uncategorized: float = 0.3


@dataclass(frozen=True)
class MatchConfig:
    """Tolerances used when pairing bank withdrawals with card payments."""

    date_tolerance_days: int = 5
    amount_tolerance: Decimal = Decimal("0.01")

    def __post_init__(self) -> None:
        if self.date_tolerance_days < 0:
            raise ValidationError(
                f"date_tolerance_days must be >= 0 (got {self.date_tolerance_days})"
            )
        if not isinstance(self.amount_tolerance, Decimal):
            object.__setattr__(
                self, "amount_tolerance", _to_decimal(self.amount_tolerance)
            )
        if self.amount_tolerance < 0:
            raise ValidationError(
                f"amount_tolerance must be >= 0 (got {self.amount_tolerance})"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "MatchConfig":
        """Build a config from a loosely typed mapping, keeping defaults."""
        if not data:
            return cls()
        kwargs: dict[str, Any] = {}
        if data.get("date_tolerance_days") is not None:
            try:
                kwargs["date_tolerance_days"] = int(data["date_tolerance_days"])
            except (TypeError, ValueError):
                raise ValidationError(
                    f"Invalid date_tolerance_days: {data['date_tolerance_days']!r}"
                )
        if data.get("amount_tolerance") is not None:
            kwargs["amount_tolerance"] = _to_decimal(data["amount_tolerance"])
        return cls(**kwargs)


@dataclass(frozen=True)
class PatternValidationConfig:
    """Thresholds for accepting a new categorization pattern."""

    min_length: int = 5
    max_match_percent: float = 0.2
    max_matches_for_broad: int = 3


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, float):
        # floats go through str() so 0.01 stays 0.01
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid decimal value: {value!r}")
