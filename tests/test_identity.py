"""Tests for transaction fingerprints, collision suffixes and dedup."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
import hashlib
import re

import pytest

from finance_engine.domain.errors import CollisionOverflowError
from finance_engine.domain.identity import (
    base_id,
    build_collision_map,
    deduplicate_batches,
    fingerprint,
    resolve_collisions,
)
from tests.conftest import BANK, make_txn


class TestFingerprint:
    """Tests for fingerprint()."""

    def test_is_16_lowercase_hex(self):
        """Ids are 16 lowercase hex characters."""
        txn_id = fingerprint(date(2026, 1, 15), "STARBUCKS #123", Decimal("-5.75"), 2122)
        assert re.fullmatch(r"[0-9a-f]{16}", txn_id)

    def test_matches_sha256_of_payload(self):
        """The id is the truncated SHA-256 of the pipe-joined payload."""
        expected = hashlib.sha256(b"2026-01-15|STARBUCKS #123|-5.75|2122").hexdigest()[:16]
        assert fingerprint(date(2026, 1, 15), "STARBUCKS #123", Decimal("-5.75"), 2122) == expected

    def test_trailing_zeros_do_not_matter(self):
        """Equal amounts with different scales share an id."""
        a = fingerprint(date(2026, 1, 15), "LUNCH", Decimal("23.450"), 1120)
        b = fingerprint(date(2026, 1, 15), "LUNCH", Decimal("23.45"), 1120)
        assert a == b

    def test_whole_amount_has_no_decimal_point(self):
        """Whole amounts render without a decimal point."""
        expected = hashlib.sha256(b"2026-01-15|RENT|-100|1120").hexdigest()[:16]
        assert fingerprint(date(2026, 1, 15), "RENT", Decimal("-100.00"), 1120) == expected

    def test_large_amount_never_uses_exponent(self):
        """Large amounts never render in exponent notation."""
        expected = hashlib.sha256(b"2026-01-15|WIRE|1000000|1120").hexdigest()[:16]
        assert fingerprint(date(2026, 1, 15), "WIRE", Decimal("1E+6"), 1120) == expected

    @pytest.mark.parametrize(
        "changed",
        [
            (date(2026, 1, 16), "LUNCH", Decimal("23.45"), 1120),
            (date(2026, 1, 15), "LUNCH ", Decimal("23.45"), 1120),
            (date(2026, 1, 15), "lunch", Decimal("23.45"), 1120),
            (date(2026, 1, 15), "LUNCH", Decimal("-23.45"), 1120),
            (date(2026, 1, 15), "LUNCH", Decimal("23.45"), 1121),
        ],
    )
    def test_any_field_change_changes_id(self, changed):
        """Changing any identity field changes the id."""
        original = fingerprint(date(2026, 1, 15), "LUNCH", Decimal("23.45"), 1120)
        assert fingerprint(*changed) != original

    def test_is_stable(self):
        """Fingerprinting the same values twice gives the same id."""
        args = (date(2026, 1, 15), "LUNCH", Decimal("23.45"), 1120)
        assert fingerprint(*args) == fingerprint(*args)


class TestResolveCollisions:
    """Tests for resolve_collisions()."""

    def test_suffixes_in_encounter_order(self):
        """Repeated ids get -02, -03 suffixes in file order."""
        coffee = make_txn("2026-01-15", "STARBUCKS", "-5.00", 2122)
        result = resolve_collisions([coffee, coffee, coffee, coffee])

        assert [t.id for t in result] == [
            coffee.id,
            f"{coffee.id}-02",
            f"{coffee.id}-03",
            f"{coffee.id}-04",
        ]

    def test_unique_ids_untouched(self):
        """Unique ids keep their base form."""
        a = make_txn("2026-01-15", "STARBUCKS", "-5.00", 2122)
        b = make_txn("2026-01-15", "PEETS", "-5.00", 2122)
        assert [t.id for t in resolve_collisions([a, b])] == [a.id, b.id]

    def test_does_not_mutate_input(self):
        """Resolving collisions leaves the input unchanged."""
        coffee = make_txn("2026-01-15", "STARBUCKS", "-5.00", 2122)
        batch = [coffee, coffee]
        resolve_collisions(batch)
        assert batch[1].id == coffee.id

    def test_99_repeats_allowed(self):
        """Up to 99 repeats of one id are suffixed."""
        coffee = make_txn("2026-01-15", "STARBUCKS", "-5.00", 2122)
        result = resolve_collisions([coffee] * 99)
        assert result[-1].id == f"{coffee.id}-99"

    def test_100th_repeat_is_fatal(self):
        """A 100th repeat raises CollisionOverflowError."""
        coffee = make_txn("2026-01-15", "STARBUCKS", "-5.00", 2122)
        with pytest.raises(CollisionOverflowError) as excinfo:
            resolve_collisions([coffee] * 100)
        assert coffee.id in str(excinfo.value)

    def test_base_id_strips_suffix(self):
        """base_id drops a collision suffix."""
        assert base_id("0123456789abcdef-02") == "0123456789abcdef"
        assert base_id("0123456789abcdef") == "0123456789abcdef"

    def test_collision_map(self):
        """The collision map counts repeats per base id."""
        coffee = make_txn("2026-01-15", "STARBUCKS", "-5.00", 2122)
        other = make_txn("2026-01-15", "PEETS", "-5.00", 2122)
        resolved = resolve_collisions([coffee, coffee, other, coffee])
        assert build_collision_map(resolved) == {coffee.id: 3}


class TestDeduplicateBatches:
    """Tests for cross-file deduplication."""

    def test_overlapping_exports_are_dropped(self):
        """Ids already seen in an earlier file are dropped."""
        rent = make_txn("2026-01-01", "RENT", "-1500.00", BANK)
        coffee = make_txn("2026-01-03", "COFFEE", "-4.00", BANK)

        result = deduplicate_batches(
            {"jan-a.csv": [rent, coffee], "jan-b.csv": [coffee]}
        )

        assert [t.id for t in result.transactions] == [rent.id, coffee.id]
        assert result.duplicates_removed == 1
        assert result.warnings == ("1 duplicate transactions removed across files.",)

    def test_repeats_within_one_file_are_kept(self):
        """Repeats inside one file are kept as suffixed ids."""
        coffee = make_txn("2026-01-03", "COFFEE", "-4.00", BANK)
        result = deduplicate_batches({"jan.csv": [coffee, coffee]})

        assert [t.id for t in result.transactions] == [coffee.id, f"{coffee.id}-02"]
        assert result.duplicates_removed == 0
        assert result.collision_map == {coffee.id: 2}

    def test_files_processed_in_name_order(self):
        """Files are deduplicated in file name order."""
        coffee = make_txn("2026-01-03", "COFFEE", "-4.00", BANK)
        first = replace(coffee, source_file="a.csv")
        second = replace(coffee, source_file="b.csv")

        result = deduplicate_batches({"b.csv": [second, second], "a.csv": [first]})

        # a.csv claims the bare id, b.csv keeps only its second repeat
        assert [(t.id, t.source_file) for t in result.transactions] == [
            (coffee.id, "a.csv"),
            (f"{coffee.id}-02", "b.csv"),
        ]
        assert result.duplicates_removed == 1

    def test_deterministic(self):
        """The same batches always give the same result."""
        coffee = make_txn("2026-01-03", "COFFEE", "-4.00", BANK)
        batches = {"b.csv": [coffee], "a.csv": [coffee, coffee]}
        assert deduplicate_batches(batches) == deduplicate_batches(batches)
