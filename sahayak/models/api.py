"""
Sahayak — Pydantic Models for the HTTP Adapter
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from sahayak.models.classification import Classification
from sahayak.models.profile import EmploymentStatus, HistoryAction, Language


class CreateSessionRequest(BaseModel):
    citizen_id: str = Field(..., min_length=1)
    language: Optional[Language] = None


class SessionResponse(BaseModel):
    session_id: str
    citizen_id: str
    language: Language
    state: str
    turns: int = 0
    current_topic: Optional[str] = None
    referenced_opportunities: list[str] = Field(default_factory=list)
    clarification_count: int = 0
    failure_count: int = 0


class TurnRequest(BaseModel):
    """
    One citizen utterance. The caller may pass the NLU output directly;
    otherwise the configured classifier is used.
    """
    text: str = Field(..., min_length=1, max_length=2000)
    classification: Optional[Classification] = None


class CreateProfileRequest(BaseModel):
    """Onboarding answers. Values are validated by the profile store."""
    citizen_id: str = Field(..., min_length=1)
    name: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    caste_category: Optional[str] = None
    education_level: Optional[str] = None
    education_field: Optional[str] = None
    employment_status: Optional[EmploymentStatus] = None
    experience_years: Optional[float] = None
    income: Optional[float] = None
    dependents: Optional[int] = None
    preferred_language: Optional[Language] = None
    interests: Optional[list[str]] = None
    skills: Optional[list[str]] = None
    career_goals: Optional[list[str]] = None

    def profile_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"citizen_id"}, exclude_none=True)


class UpdateProfileRequest(BaseModel):
    field: str
    value: Any = None
    updated_at: Optional[datetime] = None


class HistoryRequest(BaseModel):
    opportunity_id: str
    action: HistoryAction
