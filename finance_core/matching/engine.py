"""
Transaction Matching Engine

Links real transactions that arrive without a template reference (bank
sync, CSV import) to the recurring template they most likely settle.

Two strategies:

1. SCORED MATCH (evaluate_transaction_match)
   Each same-type active template gets a 0-100 score from three parts:
   - Identity: token overlap between the bank description and the
     template's title/known aliases. Near-miss tokens (typos, truncation)
     count partially; similarity comes from rapidfuzz.
   - Amount: 100 at an exact match, falling linearly to 0 at the allowed
     variance (default 5%).
   - Temporal: 100 on the due date, falling linearly to 0 at the allowed
     drift (default 3 days).
   The best score decides: auto match, needs review or no match. An auto
   match whose lead over the runner-up is below the tie-breaker margin is
   downgraded to needs review.

2. SMART MATCH (smart_match)
   The looser rule used while reconciling a month: an unlinked transaction
   of the same type and category within +/-20% of the template amount.
   Templates that already have an explicitly linked transaction are left
   alone, and each transaction is used at most once.

DESIGN DECISION: Matching is pure. It never writes links itself; the
caller persists an auto match and puts a needs-review suggestion in
front of the user.
"""

import math
import re
from decimal import Decimal
from typing import Iterable, Optional, Union

from rapidfuzz import fuzz, process

from finance_core.config import MatchingSettings, get_settings
from finance_core.models.matching import MatchResult, MatchStatus, TemplateScore
from finance_core.models.recurring import RealizedTransaction, RecurringTemplate


# Bank noise that says nothing about the payee
STOP_WORDS = frozenset({
    "pos", "dd", "so", "crd", "auth", "fee", "visa", "mastercard",
    "payment", "transfer", "standing", "order", "direct", "debit",
})

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def tokenize(text: Optional[str]) -> list[str]:
    """Lowercase alphanumeric tokens without stop words or single letters."""
    if not text:
        return []
    return [
        word
        for word in _NON_ALNUM.sub(" ", text.lower()).split()
        if len(word) > 1 and word not in STOP_WORDS
    ]


def identity_score(
    description: Optional[str],
    aliases: Iterable[str],
    title: Optional[str],
    fuzzy_cutoff: float = 80.0,
    fuzzy_weight: float = 0.8,
) -> float:
    """
    Share (0-100) of a target's tokens found in the description.

    Targets are the known aliases and the title; the best target wins.
    """
    tx_tokens = tokenize(description)
    if not tx_tokens:
        return 0.0

    best = 0.0
    for target in [*aliases, title]:
        target_tokens = tokenize(target)
        if not target_tokens:
            continue

        found = 0.0
        for token in target_tokens:
            if token in tx_tokens:
                found += 1
            elif process.extractOne(
                token,
                tx_tokens,
                scorer=fuzz.ratio,
                score_cutoff=fuzzy_cutoff,
            ) is not None:
                found += fuzzy_weight

        best = max(best, min(found / len(target_tokens) * 100, 100.0))

    return best


def amount_score(
    tx_amount: Decimal,
    template_amount: Decimal,
    variance_percentage: Union[Decimal, float] = 5,
) -> float:
    """100 for an exact amount, linearly down to 0 at the allowed variance."""
    expected = abs(Decimal(template_amount))
    diff = abs(abs(Decimal(tx_amount)) - expected)
    if diff == 0:
        return 100.0
    if expected == 0:
        return 0.0

    variance = Decimal(str(variance_percentage))
    diff_pct = diff / expected * 100
    if diff_pct > variance:
        return 0.0
    return float(100 - diff_pct / variance * 100)


def temporal_score(
    tx_date,
    due_date,
    variance_days: int = 3,
) -> float:
    """100 on the due date, linearly down to 0 at the allowed drift."""
    if tx_date is None or due_date is None:
        return 0.0

    drift = abs((tx_date - due_date).days)
    if drift == 0:
        return 100.0
    if drift > variance_days:
        return 0.0
    return 100 - drift / variance_days * 100


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class TransactionMatcher:
    """Scores transactions against templates using MatchingSettings."""

    def __init__(self, settings: Optional[MatchingSettings] = None):
        self._settings = settings or get_settings().matching

    def score_template(
        self,
        transaction: RealizedTransaction,
        template: RecurringTemplate,
    ) -> TemplateScore:
        settings = self._settings

        identity = identity_score(
            transaction.raw_description,
            template.known_aliases,
            template.title,
            fuzzy_cutoff=settings.fuzzy_token_cutoff,
            fuzzy_weight=settings.fuzzy_token_weight,
        )
        amount = amount_score(
            transaction.amount,
            template.amount,
            template.amount_variance_percentage or settings.amount_variance_percentage,
        )
        temporal = temporal_score(
            transaction.transaction_date,
            template.next_occurrence,
            template.temporal_variance_days
            if template.temporal_variance_days is not None
            else settings.temporal_variance_days,
        )

        total = (
            identity * settings.identity_weight
            + amount * settings.amount_weight
            + temporal * settings.temporal_weight
        )

        return TemplateScore(
            template_id=template.id,
            identity_score=identity,
            amount_score=amount,
            temporal_score=temporal,
            score=min(_round_half_up(total), 100),
        )

    def evaluate(
        self,
        transaction: Union[RealizedTransaction, dict],
        templates: Iterable[Union[RecurringTemplate, dict]],
    ) -> MatchResult:
        """
        Decide which template, if any, a transaction settles.

        Only active templates of the same type are considered.
        """
        if isinstance(transaction, dict):
            transaction = RealizedTransaction.model_validate(transaction)

        candidates = [
            t if isinstance(t, RecurringTemplate) else RecurringTemplate.model_validate(t)
            for t in templates
        ]
        scored = sorted(
            (
                self.score_template(transaction, template)
                for template in candidates
                if template.is_active and template.type == transaction.type
            ),
            key=lambda s: s.score,
            reverse=True,
        )

        if not scored:
            return MatchResult(transaction_id=transaction.id, status=MatchStatus.NO_MATCH)

        top = scored[0]
        runner_up = scored[1] if len(scored) > 1 else None
        settings = self._settings

        if top.score >= settings.auto_match_threshold:
            if runner_up and top.score - runner_up.score < settings.tie_breaker_margin:
                status = MatchStatus.NEEDS_REVIEW
            else:
                status = MatchStatus.AUTO_MATCH
        elif top.score >= settings.suggestion_threshold:
            status = MatchStatus.NEEDS_REVIEW
        else:
            status = MatchStatus.NO_MATCH

        return MatchResult(
            transaction_id=transaction.id,
            status=status,
            match_confidence_score=top.score,
            template_id=top.template_id if status == MatchStatus.AUTO_MATCH else None,
            suggested_template_id=(
                top.template_id if status == MatchStatus.NEEDS_REVIEW else None
            ),
            candidates=scored,
        )


def evaluate_transaction_match(
    transaction: Union[RealizedTransaction, dict],
    templates: Iterable[Union[RecurringTemplate, dict]],
    settings: Optional[MatchingSettings] = None,
) -> MatchResult:
    """Evaluate with a one-off TransactionMatcher."""
    return TransactionMatcher(settings).evaluate(transaction, templates)


def smart_match(
    templates: Iterable[RecurringTemplate],
    transactions: Iterable[RealizedTransaction],
    margin: Union[Decimal, float] = Decimal("0.20"),
) -> dict[str, RealizedTransaction]:
    """
    Pair templates with unlinked transactions.

    Templates are visited in order and take the first unlinked transaction
    of the same type and category whose amount is within `margin` of the
    template amount. A template with an explicitly linked transaction is
    skipped.

    Returns:
        template_id -> the transaction it was paired with
    """
    transactions = list(transactions)
    margin = Decimal(str(margin))
    linked_ids = {tx.recurring_template_id for tx in transactions if tx.is_linked}
    pool = [tx for tx in transactions if not tx.is_linked]

    paired: dict[str, RealizedTransaction] = {}
    for template in templates:
        if template.id in linked_ids:
            continue

        expected = abs(template.amount)
        for index, tx in enumerate(pool):
            if tx.type != template.type or tx.category_id != template.category_id:
                continue
            if abs(abs(tx.amount) - expected) <= expected * margin:
                paired[template.id] = pool.pop(index)
                break

    return paired
