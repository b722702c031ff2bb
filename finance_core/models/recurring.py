"""
Recurring Obligation Models

These models define the schemas for recurring income/expense templates,
the real transactions they are reconciled against, and the derived
per-period views the reconciler produces.

DESIGN DECISION: Inputs arrive from the UI collaborator as plain records
with camelCase keys. Every model accepts both the camelCase alias and the
snake_case field name, and dumps camelCase with ISO dates on the way out.

Derived models (ReconciledOccurrence, ProjectedOccurrence) are never
persisted. They are recomputed on every reconciliation pass.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Frequency(str, Enum):
    """Supported recurrence cadences."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class TransactionType(str, Enum):
    """Direction of money flow."""
    INCOME = "income"
    EXPENSE = "expense"


class FinancialPriority(str, Enum):
    """Priority bucket an expense is budgeted under."""
    NEEDS = "needs"
    WANTS = "wants"


class OccurrenceStatus(str, Enum):
    """
    Current-period status of a recurring obligation.

    PAID wins over everything else; the remaining states are derived
    purely from the distance between the due date and the reference date.
    """
    UPCOMING = "upcoming"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"
    PAID = "paid"


class _BoundaryModel(BaseModel):
    """Base for models exchanged with the UI collaborator."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_dict(self) -> dict:
        """Dump with camelCase keys and ISO date strings."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# INPUT MODELS
# =============================================================================

class RecurringTemplate(_BoundaryModel):
    """
    A recurring income or expense owned by a user.

    `next_occurrence` is the authoritative schedule state. It is advanced
    by an external processing step each time an occurrence is materialised
    into a real transaction; the reconciler only reads it.

    `frequency` is kept as a normalised string rather than the Frequency
    enum so that unknown values reach the occurrence calculator, which
    degrades them to a monthly cadence instead of rejecting the record.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Template identifier"
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        description="Owning user"
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display title"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Expected amount per occurrence"
    )
    type: TransactionType = Field(
        ...,
        description="Income or expense"
    )
    frequency: Optional[str] = Field(
        default=None,
        description="Recurrence cadence (see Frequency)"
    )
    day_of_month: Optional[int] = Field(
        default=None,
        ge=1,
        le=31,
        description="Anchor day for monthly/quarterly/yearly cadences"
    )
    day_of_week: Optional[int] = Field(
        default=None,
        ge=0,
        le=6,
        description="Anchor weekday for weekly cadences (0 = Sunday)"
    )
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    last_processed_date: Optional[date] = Field(
        default=None,
        description="Date of the last occurrence materialised into a transaction"
    )
    next_occurrence: Optional[date] = Field(
        default=None,
        description="Stamped next due date"
    )
    is_active: bool = True
    category_id: Optional[str] = None
    financial_priority: Optional[FinancialPriority] = None
    notes: Optional[str] = Field(
        default=None,
        max_length=1000
    )

    # Matching hints for unlinked bank/import transactions
    known_aliases: list[str] = Field(
        default_factory=list,
        description="Bank descriptions this obligation is known to appear under"
    )
    amount_variance_percentage: Optional[Decimal] = Field(
        default=None,
        gt=0,
        le=100,
        description="Allowed amount deviation for matching, in percent"
    )
    temporal_variance_days: Optional[int] = Field(
        default=None,
        ge=0,
        description="Allowed date drift from the due date for matching"
    )

    @field_validator('frequency', mode='before')
    @classmethod
    def normalize_frequency(cls, v):
        if isinstance(v, Frequency):
            return v.value
        if isinstance(v, str):
            return v.strip().lower() or None
        return v


class RealizedTransaction(_BoundaryModel):
    """
    A real, recorded transaction (read-only input to reconciliation).

    May reference at most one recurring template.
    """

    id: str = Field(..., min_length=1)
    recurring_template_id: Optional[str] = None
    type: TransactionType
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Settled amount"
    )
    transaction_date: date = Field(
        ...,
        alias="date",
        description="Booking date"
    )
    is_paid: bool = False
    category_id: Optional[str] = None
    raw_description: Optional[str] = Field(
        default=None,
        description="Unedited bank or import description"
    )

    @property
    def is_linked(self) -> bool:
        return bool(self.recurring_template_id)

    def counts_as_settlement(self) -> bool:
        """
        Income always settles; an expense only once it is flagged paid.

        An unpaid expense entry must never mark a bill as paid.
        """
        return self.type == TransactionType.INCOME or self.is_paid


# =============================================================================
# DERIVED MODELS
# =============================================================================

class ReconciledOccurrence(_BoundaryModel):
    """Current-period view of one template."""

    template: RecurringTemplate
    is_paid: bool
    paid_amount: Decimal = Field(ge=0)
    days_until_due: int
    status: OccurrenceStatus
    calculated_next_date: date = Field(
        ...,
        description="Due date shown to the user for this period"
    )


class ProjectedOccurrence(_BoundaryModel):
    """A forward-looking schedule instance. Carries no payment state."""

    template: RecurringTemplate
    projected_date: date
    is_projection: Literal[True] = True


class ReconciliationResult(_BoundaryModel):
    """Output of one reconciliation pass."""

    reference_date: date
    period_start: date
    period_end: date
    current_period_items: list[ReconciledOccurrence] = Field(default_factory=list)
    timeline_items: list[ProjectedOccurrence] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_period(self) -> 'ReconciliationResult':
        if self.period_end < self.period_start:
            raise ValueError("Period end cannot be before start")
        return self

    def items_with_status(self, *statuses: OccurrenceStatus) -> list[ReconciledOccurrence]:
        """Filter current-period items by status."""
        return [item for item in self.current_period_items if item.status in statuses]

    def status_counts(self) -> dict[str, int]:
        counts = {status.value: 0 for status in OccurrenceStatus}
        for item in self.current_period_items:
            counts[item.status.value] += 1
        return counts
