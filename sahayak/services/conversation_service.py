"""
Sahayak — Conversation Service
Turn orchestration. One call per citizen utterance:

  classify (outside the session lock) → load profile → route →
  upstream calls (store search / get, profile writes) →
  context mutations → structured payload

Context is only mutated after every upstream call of the turn has
succeeded, so a collaborator failure leaves the session exactly as it was
and the citizen hears "temporarily unavailable" instead of a stalled turn.
Turns within one session are serialised by the session lock; different
sessions run concurrently.
"""

from typing import Any

from sahayak.config import Settings, get_settings
from sahayak.errors import (
    OpportunityNotFoundError,
    ProfileNotFoundError,
    ReferenceUnresolvedError,
    RepeatedFailureError,
    UpstreamUnavailableError,
    ValidationError,
)
from sahayak.models.classification import Classification, ExtractedEntities, IntentCategory
from sahayak.models.conversation import ConversationContext, Turn
from sahayak.models.opportunity import OpportunityCategory, Program, Scheme
from sahayak.models.payload import ResponsePayload
from sahayak.models.profile import CitizenProfile, HistoryAction, Language
from sahayak.models.results import SearchCriteria
from sahayak.services.context_tracker import ContextTracker
from sahayak.services.intent_router import Route, RouteDecision, route_intent
from sahayak.services.matching_service import MatchingService
from sahayak.services.profile_store import ProfileStore, validate_field
from sahayak.services.providers.base import IntentClassifier, OpportunitySearchProvider
from sahayak.services.response_assembler import ResponseAssembler
from sahayak.services.upstream import call_upstream
from sahayak.utils.logger import logger


# Candidates pulled from the store per search before ranking
CANDIDATE_POOL = 50

# Entity → profile field, for conversational profile updates
ENTITY_FIELDS = {
    "location": "location",
    "age": "age",
    "income": "income",
    "education": "education_level",
    "experience": "experience_years",
    "skills": "skills",
    "interests": "interests",
}
LIST_FIELDS = ("skills", "interests")


class ConversationService:
    def __init__(
        self,
        tracker: ContextTracker,
        profiles: ProfileStore,
        opportunities: OpportunitySearchProvider,
        matcher: MatchingService | None = None,
        assembler: ResponseAssembler | None = None,
        classifier: IntentClassifier | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.tracker = tracker
        self.profiles = profiles
        self.opportunities = opportunities
        self.matcher = matcher or MatchingService(self.settings)
        self.assembler = assembler or ResponseAssembler(self.settings)
        self.classifier = classifier

    # ──────────────────────────────────────────────────────────────
    # Sessions
    # ──────────────────────────────────────────────────────────────

    async def start_session(self, citizen_id: str, language: Language | None = None) -> ConversationContext:
        """
        Open a session. Without an explicit language the citizen's preferred
        language is used; a citizen with no profile starts in English and
        gets the onboarding payload on the first turn.
        """
        if language is None:
            try:
                profile = await self.profiles.get(citizen_id)
                language = profile.preferred_language
            except ProfileNotFoundError:
                language = Language.ENGLISH
        return self.tracker.create_session(citizen_id, language)

    # ──────────────────────────────────────────────────────────────
    # Turns
    # ──────────────────────────────────────────────────────────────

    async def handle_turn(
        self,
        session_id: str,
        text: str,
        classification: Classification | None = None,
    ) -> ResponsePayload:
        """Process one citizen utterance and return the structured payload."""
        classify_error: UpstreamUnavailableError | None = None
        if classification is None:
            try:
                classification = await self._classify(session_id, text)
            except UpstreamUnavailableError as e:
                classify_error = e

        async with self.tracker.store.lock(session_id):
            context = self.tracker.touch(session_id)
            if classify_error is not None:
                logger.error(f"❌ Turn in {session_id} aborted: {classify_error}")
                return self.assembler.unavailable(context, classify_error.collaborator)

            try:
                return await self._process(context, text, classification)
            except UpstreamUnavailableError as e:
                logger.error(f"❌ Turn in {session_id} aborted: {e}")
                return self.assembler.unavailable(context, e.collaborator)

    async def _classify(self, session_id: str, text: str) -> Classification:
        if self.classifier is None:
            raise ValueError("No classification supplied and no classifier configured")
        existing = self.tracker.store.get(session_id)
        language = existing.language if existing else Language.ENGLISH
        return await call_upstream(
            self.classifier.name, lambda: self.classifier.classify(text, language), self.settings
        )

    async def _process(
        self, context: ConversationContext, text: str, classification: Classification
    ) -> ResponsePayload:
        try:
            profile = await self.profiles.get(context.citizen_id)
        except ProfileNotFoundError:
            logger.info(f"👋 No profile for {context.citizen_id}; onboarding")
            self.tracker.record_resolved_intent(context.session_id)
            payload = self.assembler.onboarding(context)
            self._record_turn(context, text, classification.category.value, payload)
            return payload

        decision = route_intent(classification, context, self.settings)
        logger.info(
            f"🧭 {context.session_id}: {classification.category.value} "
            f"({classification.confidence:.2f}) → {decision.route.value}"
        )

        if decision.needs_clarification:
            payload = self._unresolved_intent(context, decision, classification)
        elif decision.search_category is not None:
            payload = await self._search(context, profile, decision)
        elif decision.route == Route.CLARIFICATION:
            payload = await self._follow_up(context, profile, decision, text)
        elif decision.route == Route.PROFILE_UPDATE:
            payload = await self._profile_update(context, profile, decision, text)
        elif decision.route == Route.HELP:
            self.tracker.record_success(context.session_id)
            payload = self.assembler.help(context, route=decision.route.value)
        else:
            raise ValueError(f"Unhandled route: {decision.route!r}")

        if not decision.needs_clarification:
            self.tracker.record_resolved_intent(context.session_id)
        self._record_turn(context, text, classification.category.value, payload)
        return payload

    def _record_turn(
        self, context: ConversationContext, text: str, intent: str, payload: ResponsePayload
    ) -> None:
        turn = Turn(
            citizen_input=text,
            intent=intent,
            response_summary=f"{payload.kind.value}:{len(payload.opportunities)}",
            surfaced_opportunities=payload.surfaced_ids + [a.opportunity_id for a in payload.alternatives],
        )
        self.tracker.append_turn(context.session_id, turn)

    # ──────────────────────────────────────────────────────────────
    # Routes
    # ──────────────────────────────────────────────────────────────

    def _unresolved_intent(
        self, context: ConversationContext, decision: RouteDecision, classification: Classification
    ) -> ResponsePayload:
        reason = "ambiguous" if classification.category == IntentCategory.AMBIGUOUS else "low_confidence"
        self.tracker.record_clarification(context.session_id)
        try:
            self.tracker.record_failure(context.session_id)
        except RepeatedFailureError as e:
            logger.warning(f"🆘 Escalating {context.session_id}: {e}")
            reason = "repeated_failure"
        return self.assembler.clarification(context, reason, route=decision.route.value)

    async def _search(
        self, context: ConversationContext, profile: CitizenProfile, decision: RouteDecision
    ) -> ResponsePayload:
        category = decision.search_category
        criteria = SearchCriteria.from_entities(decision.entities, limit=self.settings.search_result_limit)
        candidates = await call_upstream(
            self.opportunities.name,
            lambda: self.opportunities.search(category, criteria, limit=CANDIDATE_POOL),
            self.settings,
        )
        matches = self.matcher.search(category, profile, criteria, candidates)

        topic_changed = self.tracker.detect_topic_change(context.session_id, decision.topic)
        self.tracker.record_success(context.session_id)
        return self.assembler.results(
            context,
            matches,
            criteria,
            profile.preferred_language,
            route=decision.route.value,
            topic_changed=topic_changed,
        )

    def _resolve(self, context: ConversationContext, entities: ExtractedEntities, text: str) -> str:
        if entities.opportunity_id:
            return entities.opportunity_id
        phrase = self.tracker.find_reference_phrase(text)
        opportunity_id = self.tracker.resolve_reference(context.session_id, phrase) if phrase else None
        if opportunity_id is None:
            raise ReferenceUnresolvedError(phrase)
        return opportunity_id

    def _unresolved_reference(
        self, context: ConversationContext, error: ReferenceUnresolvedError, route: Route
    ) -> ResponsePayload:
        logger.info(f"❓ {context.session_id}: {error}")
        self.tracker.record_clarification(context.session_id)
        return self.assembler.clarification(
            context, "reference_unresolved", phrase=error.phrase, route=route.value
        )

    async def _follow_up(
        self,
        context: ConversationContext,
        profile: CitizenProfile,
        decision: RouteDecision,
        text: str,
    ) -> ResponsePayload:
        try:
            opportunity_id = self._resolve(context, decision.entities, text)
        except ReferenceUnresolvedError as e:
            return self._unresolved_reference(context, e, decision.route)

        try:
            opportunity = await call_upstream(
                self.opportunities.name, lambda: self.opportunities.get(opportunity_id), self.settings
            )
        except OpportunityNotFoundError:
            logger.info(f"🔍 {opportunity_id} no longer in the store")
            return self.assembler.results(
                context, [], SearchCriteria(), profile.preferred_language, route=decision.route.value
            )

        eligibility, alternatives = None, []
        if isinstance(opportunity, (Scheme, Program)):
            eligibility = self.matcher.eligibility.check(opportunity, profile)
            if not eligibility.eligible:
                category = OpportunityCategory(opportunity.category)
                candidates = await call_upstream(
                    self.opportunities.name,
                    lambda: self.opportunities.search(category, SearchCriteria(), limit=CANDIDATE_POOL),
                    self.settings,
                )
                alternatives = self.matcher.suggest_alternatives(opportunity, eligibility, candidates, profile)

        profile, _ = await self.profiles.append_history(
            context.citizen_id, opportunity.id, HistoryAction.VIEWED
        )

        self.tracker.record_success(context.session_id)
        return self.assembler.details(
            context,
            opportunity,
            profile.preferred_language,
            eligibility=eligibility,
            alternatives=alternatives,
            route=decision.route.value,
        )

    async def _profile_update(
        self,
        context: ConversationContext,
        profile: CitizenProfile,
        decision: RouteDecision,
        text: str,
    ) -> ResponsePayload:
        entities = decision.entities
        route = decision.route.value

        if entities.action is not None:
            try:
                opportunity_id = self._resolve(context, entities, text)
            except ReferenceUnresolvedError as e:
                return self._unresolved_reference(context, e, decision.route)
            try:
                _, appended = await self.profiles.append_history(
                    context.citizen_id, opportunity_id, entities.action
                )
            except ValidationError as e:
                return self.assembler.validation_error(context, e, route=route)

            self.tracker.mark_referenced(context.session_id, opportunity_id)
            self.tracker.record_success(context.session_id)
            return self.assembler.history(
                context, opportunity_id, entities.action, already_recorded=not appended, route=route
            )

        changes = profile_changes(entities, profile)
        if not changes:
            self.tracker.record_clarification(context.session_id)
            return self.assembler.clarification(context, "no_profile_fields", route=route)

        # All values are checked before the first write: a rejected turn changes nothing.
        try:
            for field, value in changes.items():
                validate_field(field, value)
        except ValidationError as e:
            logger.info(f"✋ {context.citizen_id}: {e}")
            return self.assembler.validation_error(context, e, route=route)

        updated, superseded = [], []
        for field, value in changes.items():
            outcome = await self.profiles.update(context.citizen_id, field, value)
            profile = outcome.profile
            (updated if outcome.applied else superseded).append(field)

        self.tracker.record_success(context.session_id)
        return self.assembler.profile_update(context, profile, updated, superseded, route=route)


def profile_changes(entities: ExtractedEntities, profile: CitizenProfile) -> dict[str, Any]:
    """Profile field values carried by an utterance. Skills and interests add to the stored list."""
    changes: dict[str, Any] = {}
    for attribute, field in ENTITY_FIELDS.items():
        value = getattr(entities, attribute)
        if value is None or value == []:
            continue
        if field in LIST_FIELDS:
            value = [*getattr(profile, field), *value]
        changes[field] = value
    return changes
