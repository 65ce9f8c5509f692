"""Payment matching between bank withdrawals and credit card payments.

A checking account withdrawal such as ``AMEX AUTOPAY`` and the matching
``PAYMENT RECEIVED`` line on the card statement describe one transfer. The
matcher pairs them so the ledger can post a single entry for both.

Processing order matters. Bank candidates are ranked by how constrained
they are (fewest card candidates first, then closest date, then closest
amount) so that a loosely constrained withdrawal cannot consume the only card
payment a later withdrawal could use. Candidates that tie on every metric
and compete for the same card payment are flagged instead of guessed.

Nothing here mutates the input. Review flags come back as
:class:`~finance_engine.domain.entities.ReviewUpdate` descriptors that the
caller applies with :func:`apply_review_updates`.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional

from finance_engine.domain.accounts import is_asset_account, is_liability_account
from finance_engine.domain.entities import (
    Match,
    MatchResult,
    MatchStats,
    PaymentPattern,
    ReviewUpdate,
    Transaction,
)
from finance_engine.domain.settings import MatchConfig
from finance_engine.utils.date_parser import days_between
from finance_engine.utils.normalize import contains_token, normalize_description

AMBIGUOUS = "ambiguous_match_candidates"
PARTIAL_PAYMENT = "partial_payment"
NO_CC_MATCH = "payment_pattern_no_cc_match"
AMOUNT_MISMATCH = "payment_amount_mismatch"

_NO_DISTANCE = float("inf")
_NO_AMOUNT = Decimal("Infinity")


@dataclass(frozen=True)
class _Candidate:
    """A card payment that could satisfy a bank withdrawal."""

    txn: Transaction
    date_diff: int
    amount_diff: Decimal


@dataclass(frozen=True)
class _BankCandidate:
    """A bank withdrawal recognized as a card payment, with its ranking."""

    txn: Transaction
    accounts: frozenset[int]
    candidate_ids: frozenset[str]
    min_date_diff: float
    min_amount_diff: Decimal

    @property
    def rank(self) -> tuple[int, float, Decimal]:
        return (len(self.candidate_ids), self.min_date_diff, self.min_amount_diff)


class PaymentMatcher:
    """Pairs bank withdrawals with card payments received."""

    def __init__(
        self,
        patterns: Sequence[PaymentPattern],
        config: MatchConfig = MatchConfig(),
    ):
        """Initialize payment matcher.

        Args:
            patterns: Payment patterns recognizing card payments on bank lines
            config: Date and amount tolerances
        """
        self.patterns = tuple(patterns)
        self.config = config

    def match(
        self,
        transactions: Sequence[Transaction],
        cc_account_ids: Optional[Iterable[int]] = None,
    ) -> MatchResult:
        """Match bank withdrawals to card payments.

        Args:
            transactions: Batch to match (not modified)
            cc_account_ids: Card accounts to consider; defaults to every
                liability account present in the batch

        Returns:
            MatchResult with matches, review updates, warnings and stats
        """
        warnings: list[str] = []

        bank_txns = [
            t for t in transactions if is_asset_account(t.account_id) and t.is_outflow
        ]
        cc_txns = [
            t for t in transactions if is_liability_account(t.account_id) and t.is_inflow
        ]

        known_cc_accounts = {
            t.account_id for t in transactions if is_liability_account(t.account_id)
        }
        if cc_account_ids is not None:
            known_cc_accounts &= set(cc_account_ids)

        if bank_txns and not cc_txns:
            warnings.append("No credit card payments available to match bank withdrawals")
        elif cc_txns and not bank_txns:
            warnings.append("No bank withdrawals available to match credit card payments")

        candidates: list[_BankCandidate] = []
        for bank_txn in bank_txns:
            accounts = self._eligible_accounts(bank_txn, known_cc_accounts, warnings)
            if not accounts:
                continue
            found = self._find_candidates(bank_txn, cc_txns, accounts)
            candidates.append(
                _BankCandidate(
                    txn=bank_txn,
                    accounts=accounts,
                    candidate_ids=frozenset(c.txn.id for c in found),
                    min_date_diff=min((c.date_diff for c in found), default=_NO_DISTANCE),
                    min_amount_diff=min((c.amount_diff for c in found), default=_NO_AMOUNT),
                )
            )

        # Most constrained first; sort is stable so input order breaks full ties.
        candidates.sort(key=lambda c: c.rank)
        ambiguous_ids = _ambiguous_groups(candidates)

        matches: list[Match] = []
        updates: list[ReviewUpdate] = []
        claimed: set[str] = set()
        ambiguous_count = partial_count = no_match_count = 0

        for candidate in candidates:
            bank_txn = candidate.txn
            if bank_txn.id in ambiguous_ids:
                updates.append(_flag(bank_txn.id, AMBIGUOUS))
                ambiguous_count += 1
                continue

            available = [t for t in cc_txns if t.id not in claimed]
            found = self._find_candidates(bank_txn, available, candidate.accounts)

            if found:
                best = _pick_best(found)
                if best is None:
                    updates.append(_flag(bank_txn.id, AMBIGUOUS))
                    ambiguous_count += 1
                    continue
                bank_amount = abs(bank_txn.signed_amount)
                matches.append(
                    Match(
                        bank_txn_id=bank_txn.id,
                        cc_txn_ids=(best.txn.id,),
                        amount=bank_amount,
                        date_diff_days=best.date_diff,
                    )
                )
                claimed.add(best.txn.id)
                if best.amount_diff != 0:
                    warnings.append(
                        f"Payment match {bank_txn.id} <-> {best.txn.id} differs by "
                        f"{best.amount_diff} (within tolerance)"
                    )
                    updates.append(_flag(bank_txn.id, AMOUNT_MISMATCH))
                    updates.append(_flag(best.txn.id, AMOUNT_MISMATCH))
                continue

            aggregate = self._aggregate(bank_txn, available, candidate.accounts)
            if aggregate is not None:
                matches.append(aggregate)
                claimed.update(aggregate.cc_txn_ids)
                continue

            in_window = self._find_candidates(
                bank_txn, cc_txns, candidate.accounts, allow_amount_mismatch=True
            )
            if in_window:
                updates.append(_flag(bank_txn.id, PARTIAL_PAYMENT))
                partial_count += 1
            else:
                updates.append(_flag(bank_txn.id, NO_CC_MATCH))
                no_match_count += 1

        return MatchResult(
            matches=tuple(matches),
            review_updates=tuple(updates),
            warnings=tuple(dict.fromkeys(warnings)),
            stats=MatchStats(
                bank_candidates=len(bank_txns),
                cc_candidates=len(cc_txns),
                matches_found=len(matches),
                ambiguous_flagged=ambiguous_count,
                partial_payment_flagged=partial_count,
                no_candidate_flagged=no_match_count,
            ),
        )

    def _eligible_accounts(
        self,
        bank_txn: Transaction,
        known_cc_accounts: set[int],
        warnings: list[str],
    ) -> frozenset[int]:
        """Card accounts this withdrawal could be paying, or empty if none."""
        desc = normalize_description(bank_txn.raw_description)
        accounts: set[int] = set()
        for pattern in self.patterns:
            if not contains_token(desc, pattern.card_identifier):
                continue
            if not any(contains_token(desc, keyword) for keyword in pattern.keywords):
                continue
            eligible = known_cc_accounts.intersection(pattern.eligible_accounts)
            if not eligible:
                warnings.append(
                    f"Payment pattern for {pattern.card_identifier} has no eligible "
                    "accounts in this batch"
                )
                continue
            accounts.update(eligible)
        return frozenset(accounts)

    def _find_candidates(
        self,
        bank_txn: Transaction,
        cc_txns: Iterable[Transaction],
        accounts: frozenset[int],
        allow_amount_mismatch: bool = False,
    ) -> list[_Candidate]:
        bank_amount = abs(bank_txn.signed_amount)
        found = []
        for cc_txn in cc_txns:
            if cc_txn.account_id not in accounts:
                continue
            date_diff = days_between(bank_txn.effective_date, cc_txn.effective_date)
            if date_diff > self.config.date_tolerance_days:
                continue
            amount_diff = abs(bank_amount - abs(cc_txn.signed_amount))
            if not allow_amount_mismatch and amount_diff > self.config.amount_tolerance:
                continue
            found.append(_Candidate(txn=cc_txn, date_diff=date_diff, amount_diff=amount_diff))
        return found

    def _aggregate(
        self,
        bank_txn: Transaction,
        available: Sequence[Transaction],
        accounts: frozenset[int],
    ) -> Optional[Match]:
        """Match one withdrawal against several payments summing to it exactly."""
        group = self._find_candidates(
            bank_txn, available, accounts, allow_amount_mismatch=True
        )
        if not group:
            return None
        bank_amount = abs(bank_txn.signed_amount)
        total = sum((abs(c.txn.signed_amount) for c in group), Decimal(0))
        if total != bank_amount:
            return None
        return Match(
            bank_txn_id=bank_txn.id,
            cc_txn_ids=tuple(c.txn.id for c in group),
            amount=bank_amount,
            date_diff_days=max(c.date_diff for c in group),
        )


def _pick_best(found: list[_Candidate]) -> Optional[_Candidate]:
    """Closest date wins, then closest amount; a tie on both is ambiguous."""
    if len(found) == 1:
        return found[0]
    ranked = sorted(found, key=lambda c: (c.date_diff, c.amount_diff))
    first, second = ranked[0], ranked[1]
    if first.date_diff == second.date_diff and first.amount_diff == second.amount_diff:
        return None
    return first


def _ambiguous_groups(candidates: Sequence[_BankCandidate]) -> set[str]:
    """Ids of bank candidates in tied groups that compete for a card payment.

    ``candidates`` must already be sorted by rank. Runs of equal rank form a
    group; if any two members share a card candidate, the whole group is
    ambiguous.
    """
    ambiguous: set[str] = set()
    start = 0
    while start < len(candidates):
        end = start + 1
        while end < len(candidates) and candidates[end].rank == candidates[start].rank:
            end += 1
        group = candidates[start:end]
        if _overlapping(group):
            ambiguous.update(c.txn.id for c in group)
        start = end
    return ambiguous


def _overlapping(group: Sequence[_BankCandidate]) -> bool:
    seen: set[str] = set()
    for candidate in group:
        if seen & candidate.candidate_ids:
            return True
        seen |= candidate.candidate_ids
    return False


def _flag(txn_id: str, reason: str) -> ReviewUpdate:
    return ReviewUpdate(txn_id=txn_id, needs_review=True, reasons_to_add=(reason,))


def match_payments(
    transactions: Sequence[Transaction],
    patterns: Sequence[PaymentPattern],
    config: MatchConfig = MatchConfig(),
    cc_account_ids: Optional[Iterable[int]] = None,
) -> MatchResult:
    """Match bank withdrawals to card payments. See :class:`PaymentMatcher`."""
    return PaymentMatcher(patterns, config).match(transactions, cc_account_ids)


def exact_matches(result: MatchResult, transactions: Iterable[Transaction]) -> tuple[Match, ...]:
    """Matches whose amount equals the absolute amount of every side exactly.

    A match made within the amount tolerance but not exactly cannot be posted
    as a single balanced entry.
    """
    amounts = {t.id: abs(t.signed_amount) for t in transactions}
    exact = []
    for match in result.matches:
        if amounts.get(match.bank_txn_id) != match.amount:
            continue
        if any(cc_id not in amounts for cc_id in match.cc_txn_ids):
            continue
        if sum((amounts[cc_id] for cc_id in match.cc_txn_ids), Decimal(0)) != match.amount:
            continue
        exact.append(match)
    return tuple(exact)


def apply_review_updates(
    transactions: Iterable[Transaction], updates: Iterable[ReviewUpdate]
) -> list[Transaction]:
    """Return transactions with review updates applied.

    Reasons accumulate across updates and are never duplicated; a flag set by
    an earlier stage is never cleared.
    """
    pending: dict[str, list[ReviewUpdate]] = {}
    for update in updates:
        pending.setdefault(update.txn_id, []).append(update)

    result = []
    for txn in transactions:
        txn_updates = pending.get(txn.id)
        if not txn_updates:
            result.append(txn)
            continue
        reasons = list(txn.review_reasons)
        needs_review = txn.needs_review
        for update in txn_updates:
            needs_review = needs_review or update.needs_review
            for reason in update.reasons_to_add:
                if reason not in reasons:
                    reasons.append(reason)
        result.append(replace(txn, needs_review=needs_review, review_reasons=tuple(reasons)))
    return result
