"""
Sahayak — Transient Matching & Eligibility Results
Produced per request, never persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from sahayak.models.classification import ExtractedEntities


class CriterionOutcome(str, Enum):
    MATCHED = "matched"
    MISSING = "missing"            # profile lacks the attribute
    OUT_OF_RANGE = "out_of_range"  # numeric attribute outside the range
    NOT_ALLOWED = "not_allowed"    # attribute not in the allowed set / enum
    UNRECOGNIZED = "unrecognized"  # criterion the core cannot evaluate


@dataclass(frozen=True)
class CriterionCheck:
    criterion: str
    outcome: CriterionOutcome
    detail: str

    @property
    def matched(self) -> bool:
        return self.outcome == CriterionOutcome.MATCHED


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    matched_criteria: list[str] = field(default_factory=list)
    unmatched_criteria: list[str] = field(default_factory=list)
    explanation: str = ""
    checks: list[CriterionCheck] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "eligible": self.eligible,
            "matched_criteria": list(self.matched_criteria),
            "unmatched_criteria": list(self.unmatched_criteria),
            "explanation": self.explanation,
            "checks": [
                {"criterion": c.criterion, "outcome": c.outcome.value, "detail": c.detail}
                for c in self.checks
            ],
        }


@dataclass(frozen=True)
class MatchResult:
    opportunity: Any  # Job | Scheme | Program
    score: float
    reasons: list[str]
    eligibility: Optional[EligibilityResult] = None

    @property
    def opportunity_id(self) -> str:
        return self.opportunity.id


@dataclass(frozen=True)
class SearchCriteria:
    """Raw search criteria handed to the opportunity store and the matcher."""
    keywords: tuple[str, ...] = ()
    location: Optional[str] = None
    tags: tuple[str, ...] = ()
    education: Optional[str] = None
    limit: Optional[int] = None

    @property
    def is_narrowed(self) -> bool:
        return bool(self.keywords or self.location or self.tags or self.education)

    @classmethod
    def from_entities(cls, entities: ExtractedEntities, limit: Optional[int] = None) -> "SearchCriteria":
        terms = [t.strip().lower() for t in (*entities.skills, *entities.interests, *entities.keywords) if t and t.strip()]
        return cls(
            keywords=tuple(dict.fromkeys(terms)),
            location=entities.location,
            education=entities.education,
            limit=limit,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "keywords": list(self.keywords),
            "location": self.location,
            "tags": list(self.tags),
            "education": self.education,
            "limit": self.limit,
        }
