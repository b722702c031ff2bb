"""
Transaction Matching Models

Output of scoring one real transaction against the recurring templates.

DESIGN DECISION: Matching suggests, the user confirms.
Only an AUTO_MATCH carries a template_id the caller may link without
asking; NEEDS_REVIEW only carries a suggestion.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MatchStatus(str, Enum):
    """Outcome of evaluating a transaction against templates."""
    AUTO_MATCH = "auto_match"
    NEEDS_REVIEW = "needs_review"
    NO_MATCH = "no_match"


class TemplateScore(BaseModel):
    """Per-template breakdown of a match score (each component 0-100)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    template_id: str
    identity_score: float = Field(ge=0, le=100)
    amount_score: float = Field(ge=0, le=100)
    temporal_score: float = Field(ge=0, le=100)
    score: int = Field(
        ...,
        ge=0,
        le=100,
        description="Weighted total, rounded half up"
    )


class MatchResult(BaseModel):
    """Best-match decision for one transaction."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    transaction_id: str
    status: MatchStatus
    match_confidence_score: int = Field(default=0, ge=0, le=100)
    template_id: Optional[str] = Field(
        default=None,
        description="Template to link (auto match only)"
    )
    suggested_template_id: Optional[str] = Field(
        default=None,
        description="Template to propose to the user (needs review only)"
    )
    candidates: list[TemplateScore] = Field(
        default_factory=list,
        description="Scored templates, best first"
    )

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
