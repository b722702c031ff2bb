"""
Budget Bucket Models

Every expense references a per-period "system budget" bucket, one per
(owner, period, bucket type). Buckets are created lazily the first time a
period is referenced and are never deleted by this package.

DESIGN DECISION: BucketKey is a frozen model so it can index the
allocator's in-flight arena directly.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel


TWO_PLACES = Decimal("0.01")


def quantize_amount(value: Decimal) -> Decimal:
    """Round to two fraction digits, as persisted."""
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class BucketType(str, Enum):
    """System budget buckets."""
    NEEDS = "needs"
    WANTS = "wants"
    SAVINGS = "savings"


class GoalMode(str, Enum):
    """How a budget goal expresses its target."""
    PERCENTAGE = "percentage"
    ABSOLUTE = "absolute"


# Display defaults for newly created buckets
BUCKET_NAMES = {
    BucketType.NEEDS: "Needs",
    BucketType.WANTS: "Wants",
    BucketType.SAVINGS: "Savings",
}

BUCKET_COLORS = {
    BucketType.NEEDS: "#EF4444",
    BucketType.WANTS: "#F59E0B",
    BucketType.SAVINGS: "#10B981",
}


class BucketKey(BaseModel):
    """Uniqueness key of a bucket."""

    model_config = ConfigDict(frozen=True)

    owner_id: str = Field(..., min_length=1)
    period_start: date
    period_end: date
    bucket_type: BucketType

    @model_validator(mode='after')
    def validate_period(self) -> 'BucketKey':
        if self.period_end < self.period_start:
            raise ValueError("Period end cannot be before start")
        return self

    def __str__(self) -> str:
        return (
            f"{self.owner_id}:{self.bucket_type.value}:"
            f"{self.period_start.isoformat()}..{self.period_end.isoformat()}"
        )


class BudgetGoal(BaseModel):
    """
    A user's goal for one bucket type.

    Percentage goals need a known income to produce an amount;
    absolute goals carry the amount directly.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    bucket_type: BucketType
    mode: GoalMode = GoalMode.PERCENTAGE
    target_percentage: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100
    )
    target_amount: Optional[Decimal] = Field(
        default=None,
        ge=0
    )


class IncomeContext(BaseModel):
    """Income and goals known at the moment a bucket is first created."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    monthly_income: Optional[Decimal] = Field(
        default=None,
        ge=0
    )
    goals: list[BudgetGoal] = Field(default_factory=list)

    def goal_for(self, bucket_type: BucketType) -> Optional[BudgetGoal]:
        for goal in self.goals:
            if goal.bucket_type == bucket_type:
                return goal
        return None

    def initial_amount(self, bucket_type: BucketType) -> Decimal:
        """
        Starting amount for a new bucket.

        Absolute goal -> its target. Percentage goal with known income ->
        income * percentage / 100. Anything else -> zero; zero buckets are
        corrected later by goal recalculation.
        """
        goal = self.goal_for(bucket_type)
        if goal is None:
            return quantize_amount(Decimal("0"))

        if goal.mode == GoalMode.ABSOLUTE:
            return quantize_amount(goal.target_amount or Decimal("0"))

        if self.monthly_income and goal.target_percentage is not None:
            return quantize_amount(
                self.monthly_income * goal.target_percentage / Decimal("100")
            )

        return quantize_amount(Decimal("0"))


class BudgetBucket(BaseModel):
    """
    A per-period system budget bucket.

    At most one bucket exists for a given BucketKey.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Bucket identifier"
    )
    owner_id: str = Field(..., min_length=1)
    period_start: date
    period_end: date
    bucket_type: BucketType
    amount: Decimal = Field(
        default=Decimal("0.00"),
        ge=0,
        description="Budgeted amount for the period"
    )
    name: Optional[str] = None
    color: Optional[str] = None
    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    @model_validator(mode='after')
    def validate_period(self) -> 'BudgetBucket':
        if self.period_end < self.period_start:
            raise ValueError("Period end cannot be before start")
        return self

    @property
    def key(self) -> BucketKey:
        return BucketKey(
            owner_id=self.owner_id,
            period_start=self.period_start,
            period_end=self.period_end,
            bucket_type=self.bucket_type,
        )

    @classmethod
    def for_key(cls, key: BucketKey, amount: Decimal) -> 'BudgetBucket':
        """Build a new, not yet persisted, bucket for a key."""
        return cls(
            owner_id=key.owner_id,
            period_start=key.period_start,
            period_end=key.period_end,
            bucket_type=key.bucket_type,
            amount=quantize_amount(amount),
            name=BUCKET_NAMES[key.bucket_type],
            color=BUCKET_COLORS[key.bucket_type],
        )

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
