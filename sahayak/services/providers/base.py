"""
Sahayak — External Collaborator Interfaces
The opportunity store, profile persistence and intent classifier live outside
the core. Implementations may block or fail; the core wraps every call with
a latency budget (see services/upstream.py).
"""

from abc import ABC, abstractmethod
from typing import Optional

from sahayak.models.classification import Classification
from sahayak.models.opportunity import OpportunityCategory
from sahayak.models.profile import CitizenProfile, Language
from sahayak.models.results import SearchCriteria


class OpportunitySearchProvider(ABC):
    """Read-only access to the opportunity store."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging and attribution."""
        ...

    @abstractmethod
    async def search(
        self, category: OpportunityCategory, criteria: SearchCriteria, limit: int = 20
    ) -> list:
        """Return a bounded list of Job | Scheme | Program candidates."""
        ...

    @abstractmethod
    async def get(self, opportunity_id: str):
        """Return one opportunity or raise OpportunityNotFoundError."""
        ...

    def is_available(self) -> bool:
        return True


class ProfileRepository(ABC):
    """Pass-through persistence for profiles. Validation is the core's job."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def get(self, citizen_id: str) -> Optional[CitizenProfile]:
        """Return the stored profile, or None when absent."""
        ...

    @abstractmethod
    async def save(self, profile: CitizenProfile) -> None:
        ...


class IntentClassifier(ABC):
    """External NLU: text in, category + confidence + entities out."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def classify(self, text: str, language: Language = Language.ENGLISH) -> Classification:
        ...
