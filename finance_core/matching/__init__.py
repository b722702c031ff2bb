"""Transaction-to-template matching package."""

from finance_core.matching.engine import (
    STOP_WORDS,
    TransactionMatcher,
    amount_score,
    evaluate_transaction_match,
    identity_score,
    smart_match,
    temporal_score,
    tokenize,
)

__all__ = [
    "STOP_WORDS",
    "TransactionMatcher",
    "amount_score",
    "evaluate_transaction_match",
    "identity_score",
    "smart_match",
    "temporal_score",
    "tokenize",
]
