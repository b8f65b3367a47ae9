import pytest

from sahayak.config import Settings
from sahayak.models.classification import Classification, ExtractedEntities, IntentCategory
from sahayak.services.context_tracker import ContextTracker
from sahayak.services.conversation_service import ConversationService
from sahayak.services.profile_store import ProfileStore
from sahayak.services.providers.memory_provider import (
    InMemoryOpportunityProvider,
    InMemoryProfileRepository,
    load_opportunities,
)
from sahayak.services.session_store import SessionStore


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


CATALOGUE = [
    {"category": "job", "id": "job-electrician", "name": "Electrician", "company": "Shakti Power", "location": "Pune", "requirements": ["ITI certificate"], "required_skills": ["wiring"], "salary_min": 15000, "salary_max": 22000, "phone": "+912012345678"},
    {"category": "job", "id": "job-welder", "name": "Welder", "company": "Deccan Fab", "location": "Pune", "requirements": ["ITI certificate"], "required_skills": ["welding"], "salary_min": 16000, "salary_max": 24000},
    {"category": "job", "id": "job-data-entry", "name": "Data Entry Operator", "company": "Sahaj Digital", "location": "Remote", "requirements": ["Typing"], "required_skills": ["typing"]},
    {"category": "scheme", "id": "scheme-youth", "name": "Youth Allowance", "location": "Central", "benefits": "Rs. 5,000 per month", "documents_required": ["Aadhaar"], "application_process": "Apply online.", "criteria": {"age": {"min": 18, "max": 35}, "employment_status": "unemployed"}, "website": "https://youth.example.gov.in"},
    {"category": "scheme", "id": "scheme-senior", "name": "Senior Pension", "location": "Central", "benefits": "Rs. 3,000 per month", "documents_required": ["Aadhaar", "Age proof"], "application_process": "Apply at the block office.", "criteria": {"age": {"min": 60}}},
    {"category": "scheme", "id": "scheme-women-18", "name": "Women Entrepreneur Grant", "location": "Central", "benefits": "Grant of Rs. 50,000", "documents_required": ["Aadhaar"], "application_process": "Apply online.", "criteria": {"age": {"min": 18}, "gender": ["female"]}},
    {"category": "scheme", "id": "scheme-adult", "name": "Adult Skill Voucher", "location": "Central", "benefits": "Rs. 10,000 training voucher", "documents_required": ["Aadhaar"], "application_process": "Apply online.", "criteria": {"age": {"min": 18}}},
    {"category": "program", "id": "program-electrical", "name": "Electrical Training", "institution": "Skill Centre Pune", "location": "Pune", "duration": "3 months", "fees": 0, "scholarship_available": False, "criteria": {"age": {"min": 18}}},
]


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        poverty_income_threshold=100000,
        upstream_timeout_seconds=0.2,
        upstream_retry_backoff_seconds=0.0,
        upstream_max_retries=1,
        search_result_limit=5,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_store():
    return SessionStore()


@pytest.fixture
def tracker(session_store, settings, clock):
    return ContextTracker(session_store, settings, clock=clock)


@pytest.fixture
def profile_repository():
    return InMemoryProfileRepository()


@pytest.fixture
def profile_store(profile_repository, settings):
    return ProfileStore(profile_repository, settings)


@pytest.fixture
def opportunities():
    return InMemoryOpportunityProvider(load_opportunities(CATALOGUE))


@pytest.fixture
def conversation(tracker, profile_store, opportunities, settings):
    return ConversationService(tracker, profile_store, opportunities, settings=settings)


def classified(category: IntentCategory, confidence: float = 0.9, **entities) -> Classification:
    return Classification(
        category=category, confidence=confidence, entities=ExtractedEntities(**entities)
    )
