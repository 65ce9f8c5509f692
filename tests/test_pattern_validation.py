"""Tests for rule pattern validation and overlap detection."""

from finance_engine.domain.entities import PatternType, Rule
from finance_engine.domain.pattern_validation import check_pattern_collision, validate_pattern
from finance_engine.domain.settings import PatternValidationConfig
from tests.conftest import AMEX, make_txn


def _batch(descriptions):
    """Build one card charge per description."""
    return [make_txn("2026-01-10", desc, f"-{i + 1}.00", AMEX) for i, desc in enumerate(descriptions)]


class TestValidatePattern:
    """Tests for validate_pattern()."""

    def test_empty_pattern(self):
        """An empty pattern is invalid."""
        result = validate_pattern("   ")
        assert result.valid is False
        assert result.errors == ("Pattern cannot be empty",)

    def test_short_pattern(self):
        """A pattern under five characters is invalid."""
        result = validate_pattern("UBER")
        assert result.valid is False
        assert result.errors == ("Pattern must be at least 5 characters (got 4)",)

    def test_invalid_regex(self):
        """Invalid regex syntax is reported."""
        result = validate_pattern("UBER(EATS", PatternType.REGEX)
        assert result.valid is False
        assert result.errors == ('Invalid regex syntax: "UBER(EATS"',)

    def test_invalid_regex_text_is_fine_as_substring(self):
        """Regex metacharacters are fine in a substring pattern."""
        assert validate_pattern("UBER(EATS").valid is True

    def test_valid_without_transactions(self):
        """Without sample transactions only syntax is checked."""
        result = validate_pattern("STARBUCKS")
        assert result.valid is True
        assert result.match_count is None
        assert result.warnings == ()

    def test_broad_pattern_warns(self):
        """A pattern matching too much of the sample warns."""
        batch = _batch(["UBER TRIP"] * 4 + ["CHIPOTLE"] * 6)

        result = validate_pattern("UBER TRIP", transactions=batch)

        assert result.valid is True
        assert result.match_count == 4
        assert result.match_percent == 0.4
        assert len(result.warnings) == 1
        assert "too broad" in result.warnings[0]

    def test_high_percent_but_few_matches_is_fine(self):
        """A high share of a small sample does not warn."""
        batch = _batch(["UBER TRIP"] * 3 + ["CHIPOTLE"])

        result = validate_pattern("UBER TRIP", transactions=batch)

        assert result.match_count == 3
        assert result.warnings == ()

    def test_many_matches_but_low_percent_is_fine(self):
        """Many matches in a large sample do not warn."""
        batch = _batch(["UBER TRIP"] * 4 + ["CHIPOTLE"] * 16)
        assert validate_pattern("UBER TRIP", transactions=batch).warnings == ()

    def test_regex_breadth(self):
        """Breadth is measured for regex patterns too."""
        batch = _batch(["UBER TRIP 1", "UBER EATS 2", "LYFT RIDE"])
        result = validate_pattern(r"^UBER\s", PatternType.REGEX, batch)
        assert result.match_count == 2

    def test_custom_thresholds(self):
        """Validation thresholds are configurable."""
        config = PatternValidationConfig(min_length=3)
        assert validate_pattern("BOA", config=config).valid is True


class TestCheckPatternCollision:
    """Tests for check_pattern_collision()."""

    def test_substring_containment_either_way(self):
        """Substring patterns overlap when one contains the other."""
        existing = [Rule(pattern="STARBUCKS", category_id=4320), Rule(pattern="STAR", category_id=4999)]

        result = check_pattern_collision("STARBUCKS RESERVE", PatternType.SUBSTRING, existing)

        assert result.has_collision is True
        assert result.colliding_patterns == ("STARBUCKS", "STAR")

    def test_normalized_comparison(self):
        """Overlap is checked on normalized text."""
        existing = [Rule(pattern="sq *blue bottle", category_id=4320)]
        result = check_pattern_collision("SQ BLUE BOTTLE", PatternType.SUBSTRING, existing)
        assert result.colliding_patterns == ("sq *blue bottle",)

    def test_regex_only_collides_on_identical_text(self):
        """Regex patterns only overlap identical text."""
        existing = [Rule(pattern="UBER.*", category_id=4260, pattern_type=PatternType.REGEX)]

        assert check_pattern_collision("UBER", PatternType.SUBSTRING, existing).has_collision is False
        assert check_pattern_collision("uber.*", PatternType.REGEX, existing).has_collision is True

    def test_no_collision(self):
        """Unrelated patterns do not overlap."""
        existing = [Rule(pattern="CHIPOTLE", category_id=4320)]
        result = check_pattern_collision("ZARA USA", PatternType.SUBSTRING, existing)
        assert result.has_collision is False
        assert result.colliding_patterns == ()
