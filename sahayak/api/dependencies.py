"""
Sahayak — Service Wiring for the HTTP Adapter
Builds the conversation core once per application and hands it to routers
through FastAPI dependencies. The opportunity store is the REST
provider when OPPORTUNITY_STORE_URL is set, otherwise the seeded in-memory
catalogue.
"""

from dataclasses import dataclass

from fastapi import Request

from sahayak.config import Settings, get_settings
from sahayak.services.context_tracker import ContextTracker
from sahayak.services.conversation_service import ConversationService
from sahayak.services.matching_service import MatchingService
from sahayak.services.profile_store import ProfileStore
from sahayak.services.providers.base import OpportunitySearchProvider
from sahayak.services.providers.http_provider import HttpOpportunityProvider
from sahayak.services.providers.memory_provider import (
    InMemoryOpportunityProvider,
    InMemoryProfileRepository,
    KeywordIntentClassifier,
)
from sahayak.services.response_assembler import ResponseAssembler
from sahayak.services.seed_opportunities import seed_catalogue
from sahayak.services.session_store import SessionStore


@dataclass
class Services:
    settings: Settings
    sessions: SessionStore
    tracker: ContextTracker
    profiles: ProfileStore
    opportunities: OpportunitySearchProvider
    conversation: ConversationService


def build_services(settings: Settings | None = None) -> Services:
    settings = settings or get_settings()

    if settings.opportunity_store_url:
        opportunities = HttpOpportunityProvider(
            settings.opportunity_store_url, api_key=settings.opportunity_store_api_key
        )
    else:
        opportunities = InMemoryOpportunityProvider()
        if settings.seed_catalogue_enabled:
            seed_catalogue(opportunities)

    sessions = SessionStore()
    tracker = ContextTracker(sessions, settings)
    profiles = ProfileStore(InMemoryProfileRepository(), settings)
    conversation = ConversationService(
        tracker=tracker,
        profiles=profiles,
        opportunities=opportunities,
        matcher=MatchingService(settings),
        assembler=ResponseAssembler(settings),
        classifier=KeywordIntentClassifier(),
        settings=settings,
    )
    return Services(settings, sessions, tracker, profiles, opportunities, conversation)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_conversation_service(request: Request) -> ConversationService:
    return get_services(request).conversation


def get_profile_store(request: Request) -> ProfileStore:
    return get_services(request).profiles
