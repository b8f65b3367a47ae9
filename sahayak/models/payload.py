"""
Sahayak — Structured Response Payload
The language-agnostic content contract handed to the downstream
text-generation / TTS pipeline. Field presence is mandatory; wording is not
specified here.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from sahayak.models.opportunity import OpportunityCategory
from sahayak.models.profile import HistoryAction, Language


class PayloadKind(str, Enum):
    RESULTS = "results"
    NO_RESULTS = "no_results"
    DETAILS = "details"
    ELIGIBILITY = "eligibility"
    PROFILE_UPDATE = "profile_update"
    VALIDATION_ERROR = "validation_error"
    HISTORY = "history"
    CLARIFICATION = "clarification"
    ESCALATION = "escalation"
    HELP = "help"
    ONBOARDING = "onboarding"
    UNAVAILABLE = "unavailable"


class SmsOffer(BaseModel):
    """Fire-and-forget SMS signal; transport is external."""
    offer: bool = False
    contacts: dict[str, str] = Field(default_factory=dict)


class OpportunityContent(BaseModel):
    opportunity_id: str
    category: OpportunityCategory
    rank: Optional[int] = None
    required_fields: list[str]
    fields: dict[str, Any]
    description: Optional[str] = None
    reasons: list[str] = Field(default_factory=list)
    score: Optional[float] = None
    eligibility: Optional[dict[str, Any]] = None
    language: Language
    language_fallback: bool = False
    fallback_fields: list[str] = Field(default_factory=list)
    sms: SmsOffer = Field(default_factory=SmsOffer)


class ClarificationContent(BaseModel):
    # low_confidence | ambiguous | reference_unresolved | repeated_failure
    reason: str
    phrase: Optional[str] = None
    options: list[str] = Field(default_factory=list)


class ProfileUpdateContent(BaseModel):
    updated_fields: list[str] = Field(default_factory=list)
    superseded_fields: list[str] = Field(default_factory=list)
    profile: dict[str, Any] = Field(default_factory=dict)


class ValidationContent(BaseModel):
    field: str
    constraint: str


class HistoryContent(BaseModel):
    opportunity_id: str
    action: HistoryAction
    already_recorded: bool = False


class ResponsePayload(BaseModel):
    session_id: str
    citizen_id: str
    kind: PayloadKind
    language: Language
    route: Optional[str] = None

    opportunities: list[OpportunityContent] = Field(default_factory=list)
    alternatives: list[OpportunityContent] = Field(default_factory=list)
    eligibility: Optional[dict[str, Any]] = None
    search_criteria: Optional[dict[str, Any]] = None
    suggest_broaden: bool = False

    clarification: Optional[ClarificationContent] = None
    profile_update: Optional[ProfileUpdateContent] = None
    validation: Optional[ValidationContent] = None
    history: Optional[HistoryContent] = None
    help_topics: list[str] = Field(default_factory=list)
    unavailable: Optional[str] = None  # collaborator that failed

    reasoning: list[str] = Field(default_factory=list)
    sms_offer: bool = False
    simplify: bool = False
    escalate: bool = False
    topic_changed: bool = False
    session_renewed: bool = False

    @property
    def surfaced_ids(self) -> list[str]:
        return [o.opportunity_id for o in self.opportunities]
