"""
Sahayak — Pydantic Models for Citizen Profiles
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class EmploymentStatus(str, Enum):
    EMPLOYED = "employed"
    UNEMPLOYED = "unemployed"
    STUDENT = "student"
    SELF_EMPLOYED = "self-employed"


class Language(str, Enum):
    HINDI = "Hindi"
    ENGLISH = "English"


class HistoryAction(str, Enum):
    VIEWED = "viewed"
    SAVED = "saved"
    APPLIED = "applied"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CitizenProfile(BaseModel):
    """Citizen profile used for matching and eligibility checking."""
    citizen_id: str
    name: Optional[str] = None
    phone: Optional[str] = None

    # Demographics
    age: Optional[int] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    caste_category: Optional[str] = None  # General, OBC, SC, ST, EWS

    # Education & work
    education_level: Optional[str] = None  # 10th, 12th, graduate, ...
    education_field: Optional[str] = None
    employment_status: Optional[EmploymentStatus] = None
    experience_years: Optional[float] = None
    income: Optional[float] = None  # annual, INR
    dependents: Optional[int] = None

    preferred_language: Language = Language.ENGLISH
    interests: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    career_goals: list[str] = Field(default_factory=list)

    # Interaction history (deduplicated, insertion-ordered)
    viewed: list[str] = Field(default_factory=list)
    saved: list[str] = Field(default_factory=list)
    applied: list[str] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    field_timestamps: dict[str, datetime] = Field(default_factory=dict)

    def history(self, action: HistoryAction) -> list[str]:
        return getattr(self, action.value)

    @property
    def terms(self) -> set[str]:
        """Lower-cased skills, interests and goals, for overlap matching."""
        return {
            t.strip().lower()
            for t in (*self.skills, *self.interests, *self.career_goals)
            if t and t.strip()
        }


# Fields that describe the citizen; metadata and history are excluded.
PROFILE_DATA_FIELDS = (
    "name", "phone", "age", "gender", "location", "caste_category",
    "education_level", "education_field", "employment_status",
    "experience_years", "income", "dependents", "preferred_language",
    "interests", "skills", "career_goals",
)
