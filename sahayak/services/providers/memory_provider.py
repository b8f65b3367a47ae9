"""
Sahayak — In-Memory Providers
Ephemeral stand-ins for the opportunity store, profile persistence and the
NLU classifier. Used by the HTTP adapter by default and by the tests.
"""

from typing import Iterable, Optional

from pydantic import TypeAdapter

from sahayak.errors import OpportunityNotFoundError
from sahayak.models.classification import Classification, IntentCategory
from sahayak.models.opportunity import Opportunity, OpportunityCategory
from sahayak.models.profile import CitizenProfile, Language
from sahayak.models.results import SearchCriteria
from sahayak.services.providers.base import IntentClassifier, OpportunitySearchProvider, ProfileRepository


_opportunity_adapter = TypeAdapter(Opportunity)


def load_opportunities(records: Iterable[dict]) -> list:
    """Validate raw catalogue records into Job | Scheme | Program models."""
    return [_opportunity_adapter.validate_python(r) for r in records]


class InMemoryOpportunityProvider(OpportunitySearchProvider):
    """
    Category and tag pre-filter over a fixed catalogue. Keywords and location
    are left to the matcher, which scores rather than drops on them.
    """

    def __init__(self, opportunities: Iterable = ()):
        self._items = {o.id: o for o in opportunities}

    @property
    def name(self) -> str:
        return "memory-opportunities"

    def add(self, opportunity) -> None:
        self._items[opportunity.id] = opportunity

    async def search(
        self, category: OpportunityCategory, criteria: SearchCriteria, limit: int = 20
    ) -> list:
        results = []
        for item in self._items.values():
            if item.category != category.value:
                continue
            if criteria.tags and not set(criteria.tags) <= set(item.tags):
                continue
            results.append(item)
        # The store returns candidates; ranking is the matcher's job.
        return results[:limit]

    async def get(self, opportunity_id: str):
        try:
            return self._items[opportunity_id]
        except KeyError:
            raise OpportunityNotFoundError(opportunity_id) from None


class InMemoryProfileRepository(ProfileRepository):
    def __init__(self):
        self._profiles: dict[str, CitizenProfile] = {}

    @property
    def name(self) -> str:
        return "memory-profiles"

    async def get(self, citizen_id: str) -> Optional[CitizenProfile]:
        return self._profiles.get(citizen_id)

    async def save(self, profile: CitizenProfile) -> None:
        self._profiles[profile.citizen_id] = profile


class KeywordIntentClassifier(IntentClassifier):
    """
    Rule-based fallback classifier for local runs without an NLU service.
    Confidence is coarse on purpose: one keyword hit is 0.75, none is 0.3.
    """

    KEYWORDS = {
        IntentCategory.JOB: ("job", "naukri", "work", "vacancy", "hiring", "employment"),
        IntentCategory.SCHEME: ("scheme", "yojana", "subsidy", "pension", "benefit", "welfare"),
        IntentCategory.EDUCATION: ("course", "college", "training", "scholarship", "program", "study"),
        IntentCategory.PROFILE_UPDATE: ("i live", "my age", "my income", "update", "i moved", "save", "applied"),
        IntentCategory.HELP: ("help", "what can you do", "madad"),
        IntentCategory.CLARIFICATION: ("tell me more", "more details", "that one", "first one", "second one", "third one"),
    }

    @property
    def name(self) -> str:
        return "keyword-classifier"

    async def classify(self, text: str, language: Language = Language.ENGLISH) -> Classification:
        lowered = (text or "").lower()
        hits = {
            category: sum(1 for k in keywords if k in lowered)
            for category, keywords in self.KEYWORDS.items()
        }
        best = max(hits, key=lambda c: hits[c])
        if hits[best] == 0:
            return Classification(category=IntentCategory.AMBIGUOUS, confidence=0.3)
        tied = [c for c, n in hits.items() if n == hits[best]]
        if len(tied) > 1:
            return Classification(category=IntentCategory.AMBIGUOUS, confidence=0.5)
        return Classification(category=best, confidence=0.75 if hits[best] == 1 else 0.9)
