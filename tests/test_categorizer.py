"""Tests for layered categorization."""

import pytest

from finance_engine.domain.categorizer import (
    Categorizer,
    apply_categorization,
    categorize,
    categorize_all,
    guess_from_bank_category,
    matches_pattern,
)
from finance_engine.domain.entities import CategorySource, PatternType, Rule, RuleSet
from finance_engine.domain.settings import UNCATEGORIZED_CATEGORY_ID
from finance_engine.utils.normalize import normalize_description
from tests.conftest import AMEX, make_txn


def _rule(pattern, category_id, pattern_type=PatternType.SUBSTRING):
    """Build a rule with a default substring pattern type."""
    return Rule(pattern=pattern, category_id=category_id, pattern_type=pattern_type)


class TestMatchesPattern:
    """Tests for matches_pattern()."""

    def test_substring_pattern_is_normalized(self):
        """Substring patterns are normalized before comparison."""
        desc = normalize_description("SQ *BLUE  BOTTLE #42")
        matched, warning = matches_pattern(desc, _rule("sq*blue bottle", 4320))
        assert matched is True
        assert warning is None

    def test_substring_no_match(self):
        """A substring that is absent does not match."""
        matched, _ = matches_pattern("ZARA USA", _rule("UNIQLO", 4410))
        assert matched is False

    def test_regex_is_case_insensitive(self):
        """Regex patterns ignore case."""
        matched, warning = matches_pattern("UBER EATS 1234", _rule(r"uber\s+eats", 4320, PatternType.REGEX))
        assert matched is True
        assert warning is None

    def test_invalid_regex_returns_warning(self):
        """An invalid regex reports a warning instead of raising."""
        matched, warning = matches_pattern("ANYTHING", _rule("([unclosed", 4320, PatternType.REGEX))
        assert matched is False
        assert warning.startswith('Invalid regex pattern "([unclosed"')


class TestCategorize:
    """Tests for categorize()."""

    def test_user_rules_win(self):
        """User rules take priority over shared and base rules."""
        txn = make_txn("2026-01-10", "NETFLIX.COM", "-15.49", AMEX)
        rules = RuleSet(
            user_rules=(_rule("NETFLIX", 4610),),
            shared_rules=(_rule("NETFLIX", 4620),),
            base_rules=(_rule("NETFLIX", 4630),),
        )

        result = categorize(txn, rules).result

        assert result.category_id == 4610
        assert result.confidence == 1.0
        assert result.source is CategorySource.USER
        assert result.needs_review is False

    def test_falls_through_to_shared_then_base(self):
        """Lookup falls through to shared rules and then to base rules."""
        txn = make_txn("2026-01-10", "NETFLIX.COM", "-15.49", AMEX)
        shared = RuleSet(shared_rules=(_rule("NETFLIX", 4620),), base_rules=(_rule("NETFLIX", 4630),))
        base = RuleSet(base_rules=(_rule("NETFLIX", 4630),))

        assert categorize(txn, shared).result.category_id == 4620
        assert categorize(txn, shared).result.confidence == 0.9
        assert categorize(txn, base).result.category_id == 4630
        assert categorize(txn, base).result.confidence == 0.8

    def test_first_rule_in_layer_wins(self):
        """The first matching rule in a layer wins."""
        txn = make_txn("2026-01-10", "UBER EATS", "-20.00", AMEX)
        rules = RuleSet(user_rules=(_rule("UBER", 4260), _rule("UBER EATS", 4320)))
        assert categorize(txn, rules).result.category_id == 4260

    def test_invalid_regex_skipped_and_later_rule_matches(self):
        """A broken regex is skipped and a later rule can still match."""
        txn = make_txn("2026-01-10", "TRADER JOES #552", "-54.10", AMEX)
        rules = RuleSet(
            user_rules=(_rule("[bad", 4999, PatternType.REGEX), _rule("TRADER JOE", 4310)),
        )

        output = categorize(txn, rules)

        assert output.result.category_id == 4310
        assert len(output.warnings) == 1
        assert "[bad" in output.warnings[0]

    def test_bank_category_fallback(self):
        """The institution category is used when no rule matches."""
        txn = make_txn("2026-01-10", "SOME TAXI CO", "-30.00", AMEX, raw_category="Transportation-Taxi")
        output = categorize(txn, RuleSet(), bank_category_map={"TRANSPORTATION": 4260})

        assert output.result.category_id == 4260
        assert output.result.confidence == 0.6
        assert output.result.source is CategorySource.BANK

    def test_uncategorized_fallback(self):
        """Unmatched transactions are uncategorized and flagged for review."""
        txn = make_txn("2026-01-10", "MYSTERY MERCHANT", "-9.99", AMEX)
        result = categorize(txn, RuleSet()).result

        assert result.category_id == UNCATEGORIZED_CATEGORY_ID
        assert result.confidence == 0.3
        assert result.source is CategorySource.UNCATEGORIZED
        assert result.needs_review is True
        assert result.review_reasons == ("no_rule_match",)

    def test_does_not_mutate_transaction(self, rules):
        """Categorizing leaves the input transaction unchanged."""
        txn = make_txn("2026-01-10", "CHIPOTLE 1234", "-15.42", AMEX)
        categorize(txn, rules)
        assert txn.category_id == UNCATEGORIZED_CATEGORY_ID
        assert txn.confidence == 0.0

    def test_description_is_normalized_from_raw(self):
        """Rules are matched against the normalized raw description."""
        txn = make_txn("2026-01-10", "tst* chipotle   online", "-15.42", AMEX)
        result = categorize(txn, RuleSet(user_rules=(_rule("TST CHIPOTLE ONLINE", 4320),))).result
        assert result.category_id == 4320


class TestGuessFromBankCategory:
    """Tests for guess_from_bank_category()."""

    def test_exact_match_is_case_insensitive(self):
        """Exact category keys match regardless of case."""
        assert guess_from_bank_category("restaurant", {"RESTAURANT": 4320}) == 4320

    def test_exact_match_preferred_over_partial(self):
        """An exact key beats an earlier partial key."""
        mapping = {"RESTAURANT-BAR": 4330, "RESTAURANT": 4320}
        assert guess_from_bank_category("Restaurant", mapping) == 4320

    def test_partial_match_either_direction(self):
        """Partial keys match when either side contains the other."""
        assert guess_from_bank_category("Merchandise & Supplies-Groceries", {"GROCERIES": 4310}) == 4310
        assert guess_from_bank_category("Travel", {"TRAVEL-AIRLINE": 4510}) == 4510

    def test_first_partial_key_in_order_wins(self):
        """The first partial key in mapping order wins."""
        mapping = {"TRANSPORT": 4260, "TRANSPORTATION-TAXI": 4270}
        assert guess_from_bank_category("Transportation-Taxi-Uber", mapping) == 4260

    def test_no_category(self):
        """A missing institution category gives no guess."""
        assert guess_from_bank_category(None, {"TRAVEL": 4510}) is None
        assert guess_from_bank_category("", {"TRAVEL": 4510}) is None
        assert guess_from_bank_category("Travel", {}) is None


class TestCategorizeAll:
    """Tests for batch categorization."""

    def test_returns_new_records_with_stats(self, rules):
        """Batch categorization returns new records and per-source counts."""
        batch = [
            make_txn("2026-01-10", "CHIPOTLE 1234", "-15.42", AMEX),
            make_txn("2026-01-11", "ZARA USA", "-89.99", AMEX),
            make_txn("2026-01-12", "UNKNOWN SHOP", "-5.00", AMEX),
        ]

        result = categorize_all(batch, rules)

        assert [t.category_id for t in result.transactions] == [4320, 4410, UNCATEGORIZED_CATEGORY_ID]
        assert [t.confidence for t in result.transactions] == [1.0, 0.9, 0.3]
        assert result.transactions[2].needs_review is True
        assert result.stats.total == 3
        assert result.stats.by_source[CategorySource.USER] == 1
        assert result.stats.by_source[CategorySource.SHARED] == 1
        assert result.stats.by_source[CategorySource.UNCATEGORIZED] == 1
        assert result.stats.needs_review == 1
        assert batch[0].category_id == UNCATEGORIZED_CATEGORY_ID

    def test_warnings_are_deduplicated(self):
        """Repeated warnings are reported once per batch."""
        rules = RuleSet(user_rules=(_rule("(oops", 4320, PatternType.REGEX),))
        batch = [
            make_txn("2026-01-10", "A SHOP", "-1.00", AMEX),
            make_txn("2026-01-10", "B SHOP", "-2.00", AMEX),
        ]
        result = categorize_all(batch, rules)
        assert len(result.warnings) == 1

    def test_deterministic(self, rules):
        """The same batch always gives the same result."""
        batch = [make_txn("2026-01-10", "CHIPOTLE", "-15.42", AMEX)]
        assert categorize_all(batch, rules) == categorize_all(batch, rules)

    def test_categorizer_reuses_configuration(self, rules):
        """A Categorizer applies its rules to every call."""
        categorizer = Categorizer(rules)
        txn = make_txn("2026-01-10", "CHIPOTLE", "-15.42", AMEX)
        assert categorizer.categorize(txn).result.category_id == 4320


def test_apply_categorization_keeps_existing_reasons():
    """Existing review reasons survive categorization."""
    txn = make_txn("2026-01-10", "MYSTERY", "-1.00", AMEX)
    flagged = apply_categorization(
        txn,
        categorize(txn, RuleSet()).result,
    )
    again = apply_categorization(flagged, categorize(flagged, RuleSet()).result)

    assert again.review_reasons == ("no_rule_match",)
    assert again.needs_review is True


def test_rule_from_dict_defaults_to_substring():
    """A rule without pattern_type is a substring rule."""
    rule = Rule.from_dict({"pattern": "STARBUCKS", "category_id": 4320})
    assert rule.pattern_type is PatternType.SUBSTRING

    regex = Rule.from_dict({"pattern": "STAR.*", "category_id": "4320", "pattern_type": "regex"})
    assert regex.pattern_type is PatternType.REGEX
    assert regex.category_id == 4320


def test_rule_rejects_empty_pattern():
    """An empty rule pattern is rejected."""
    with pytest.raises(ValueError):
        Rule(pattern="  ", category_id=4320)
