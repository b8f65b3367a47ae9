"""
Sahayak — Intent Classification Input
Structured output of the external NLU capability. The core consumes it and
never runs the model itself.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from sahayak.models.profile import HistoryAction


class IntentCategory(str, Enum):
    JOB = "job"
    SCHEME = "scheme"
    EDUCATION = "education"
    PROFILE_UPDATE = "profile_update"
    CLARIFICATION = "clarification"
    HELP = "help"
    AMBIGUOUS = "ambiguous"


SEARCH_CATEGORIES = (IntentCategory.JOB, IntentCategory.SCHEME, IntentCategory.EDUCATION)


class ExtractedEntities(BaseModel):
    """Entities the classifier pulled out of the utterance."""
    location: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    education: Optional[str] = None
    experience: Optional[float] = None
    income: Optional[float] = None
    age: Optional[int] = None
    interests: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    # "save that one" / "I applied to the second one"
    action: Optional[HistoryAction] = None
    opportunity_id: Optional[str] = None


class Classification(BaseModel):
    category: IntentCategory
    confidence: float = Field(ge=0.0, le=1.0)
    entities: ExtractedEntities = Field(default_factory=ExtractedEntities)
