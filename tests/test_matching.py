"""
Tests for transaction-to-template matching.

The default template is a Netflix subscription due 2026-10-15.
"""

import pytest
from datetime import date
from decimal import Decimal

from finance_core.config import MatchingSettings
from finance_core.matching import (
    TransactionMatcher,
    amount_score,
    evaluate_transaction_match,
    identity_score,
    smart_match,
    temporal_score,
    tokenize,
)
from finance_core.models.matching import MatchStatus
from finance_core.models.recurring import (
    RealizedTransaction,
    RecurringTemplate,
    TransactionType,
)


DUE = date(2026, 10, 15)


@pytest.fixture
def matcher():
    return TransactionMatcher(MatchingSettings())


def make_template(template_id="t1", **overrides) -> RecurringTemplate:
    data = {
        "id": template_id,
        "owner_id": "u1",
        "title": "Netflix",
        "amount": Decimal("15.99"),
        "type": TransactionType.EXPENSE,
        "frequency": "monthly",
        "day_of_month": 15,
        "start_date": date(2026, 1, 15),
        "next_occurrence": DUE,
        "category_id": "subscriptions",
        "known_aliases": ["NETFLIX.COM"],
    }
    data.update(overrides)
    return RecurringTemplate(**data)


def make_tx(description, amount="15.99", tx_date=DUE, **overrides) -> RealizedTransaction:
    data = {
        "id": "bank-1",
        "type": TransactionType.EXPENSE,
        "amount": Decimal(amount),
        "date": tx_date,
        "raw_description": description,
    }
    data.update(overrides)
    return RealizedTransaction(**data)


class TestTokenize:
    """Tests for description tokenizing."""

    def test_drops_noise(self):
        assert tokenize("POS DD Visa *AMZN Mktp-UK 4") == ["amzn", "mktp", "uk"]

    def test_empty(self):
        assert tokenize(None) == []
        assert tokenize("   ") == []


class TestComponentScores:
    """Tests for identity, amount and temporal scores."""

    def test_alias_tokens_all_present(self):
        assert identity_score("POS NETFLIX.COM AMSTERDAM", ["NETFLIX.COM"], "Netflix") == 100

    def test_near_miss_token_gets_partial_credit(self):
        """Test that a truncated payee name counts as a fuzzy token."""
        score = identity_score("NETFLX SUBSCRIPTION", ["NETFLIX.COM"], "Netflix")
        assert score == pytest.approx(80)

    def test_unrelated_description(self):
        assert identity_score("SPOTIFY", ["NETFLIX.COM"], "Netflix") == 0

    @pytest.mark.parametrize("tx_amount,expected", [
        ("100", 100),
        ("102", 60),
        ("98", 60),
        ("105", 0),
        ("106", 0),
    ])
    def test_amount_score(self, tx_amount, expected):
        assert amount_score(Decimal(tx_amount), Decimal("100")) == pytest.approx(expected)

    def test_amount_variance_is_configurable(self):
        assert amount_score(Decimal("105"), Decimal("100"), 10) == pytest.approx(50)

    @pytest.mark.parametrize("tx_date,expected", [
        (date(2026, 10, 15), 100),
        (date(2026, 10, 16), 100 * 2 / 3),
        (date(2026, 10, 13), 100 / 3),
        (date(2026, 10, 19), 0),
    ])
    def test_temporal_score(self, tx_date, expected):
        assert temporal_score(tx_date, DUE) == pytest.approx(expected)

    def test_missing_due_date(self):
        assert temporal_score(DUE, None) == 0


class TestEvaluate:
    """Tests for the auto-match / needs-review / no-match decision."""

    def test_exact_match_is_auto(self, matcher):
        result = matcher.evaluate(make_tx("POS NETFLIX.COM AMSTERDAM"), [make_template()])
        assert result.status == MatchStatus.AUTO_MATCH
        assert result.template_id == "t1"
        assert result.suggested_template_id is None
        assert result.match_confidence_score == 100

    def test_auto_match_threshold_is_inclusive(self, matcher):
        """Test that a total of exactly 85 links automatically."""
        template = make_template(temporal_variance_days=4)
        tx = make_tx("NETFLIX.COM", tx_date=date(2026, 10, 18))
        result = matcher.evaluate(tx, [template])
        assert result.match_confidence_score == 85
        assert result.status == MatchStatus.AUTO_MATCH

    def test_late_payment_needs_review(self, matcher):
        """Test that a payment outside the date window is only suggested."""
        result = matcher.evaluate(
            make_tx("NETFLIX.COM", tx_date=date(2026, 10, 19)),
            [make_template()],
        )
        assert result.match_confidence_score == 80
        assert result.status == MatchStatus.NEEDS_REVIEW
        assert result.suggested_template_id == "t1"
        assert result.template_id is None

    def test_unknown_payee_is_no_match(self, matcher):
        result = matcher.evaluate(make_tx("SPOTIFY"), [make_template()])
        assert result.status == MatchStatus.NO_MATCH
        assert result.match_confidence_score == 60
        assert result.template_id is None
        assert result.suggested_template_id is None

    def test_close_runner_up_downgrades_to_review(self, matcher):
        """Test that two near-identical templates are never linked automatically."""
        templates = [
            make_template("t1"),
            make_template("t2", amount=Decimal("16.05")),
        ]
        result = matcher.evaluate(make_tx("NETFLIX.COM"), templates)
        assert [c.score for c in result.candidates] == [100, 97]
        assert result.status == MatchStatus.NEEDS_REVIEW
        assert result.suggested_template_id == "t1"

    def test_clear_winner_still_auto_matches(self, matcher):
        templates = [
            make_template("t1"),
            make_template("t2", amount=Decimal("16.20")),
        ]
        result = matcher.evaluate(make_tx("NETFLIX.COM"), templates)
        assert [c.score for c in result.candidates] == [100, 90]
        assert result.status == MatchStatus.AUTO_MATCH
        assert result.template_id == "t1"

    def test_type_must_match(self, matcher):
        template = make_template(type=TransactionType.INCOME)
        result = matcher.evaluate(make_tx("NETFLIX.COM"), [template])
        assert result.status == MatchStatus.NO_MATCH
        assert result.candidates == []

    def test_inactive_templates_are_skipped(self, matcher):
        result = matcher.evaluate(make_tx("NETFLIX.COM"), [make_template(is_active=False)])
        assert result.status == MatchStatus.NO_MATCH

    def test_accepts_plain_records(self):
        result = evaluate_transaction_match(
            {
                "id": "bank-9",
                "type": "expense",
                "amount": "15.99",
                "date": "2026-10-15",
                "rawDescription": "NETFLIX.COM",
            },
            [make_template().to_dict()],
            settings=MatchingSettings(),
        )
        assert result.status == MatchStatus.AUTO_MATCH
        assert result.to_dict()["templateId"] == "t1"


class TestMatchingSettings:
    """Tests for scoring policy validation."""

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            MatchingSettings(identity_weight=0.5, amount_weight=0.4, temporal_weight=0.2)

    def test_suggestion_cannot_exceed_auto(self):
        with pytest.raises(ValueError):
            MatchingSettings(auto_match_threshold=60, suggestion_threshold=70)


class TestSmartMatch:
    """Tests for the category-and-amount pairing used by reconciliation."""

    def unlinked(self, tx_id, amount, **overrides):
        return make_tx(
            None, amount, id=tx_id, **{"category_id": "subscriptions", **overrides},
        )

    def test_first_transaction_within_margin_wins(self):
        txs = [self.unlinked("a", "25.00"), self.unlinked("b", "17.50"), self.unlinked("c", "16.00")]
        paired = smart_match([make_template()], txs)
        assert paired["t1"].id == "b"

    def test_type_and_category_must_match(self):
        txs = [
            self.unlinked("a", "15.99", type=TransactionType.INCOME),
            self.unlinked("b", "15.99", category_id="groceries"),
        ]
        assert smart_match([make_template()], txs) == {}

    def test_each_transaction_is_consumed_once(self):
        templates = [make_template("t1"), make_template("t2")]
        paired = smart_match(templates, [self.unlinked("a", "15.99")])
        assert list(paired) == ["t1"]

    def test_explicitly_linked_template_is_skipped(self):
        linked = self.unlinked("a", "15.99", recurring_template_id="t1")
        paired = smart_match([make_template()], [linked, self.unlinked("b", "15.99")])
        assert paired == {}
