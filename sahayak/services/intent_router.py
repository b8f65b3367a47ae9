"""
Sahayak — Intent Router
Maps an externally classified intent + entities + current context onto one
route. Pure: holds no state, mutates nothing. Counters and topic changes are
applied by the caller through the Context Tracker.
"""

from dataclasses import dataclass
from enum import Enum

from sahayak.config import Settings, get_settings
from sahayak.errors import IntentAmbiguousError
from sahayak.models.classification import Classification, ExtractedEntities, IntentCategory
from sahayak.models.conversation import ConversationContext
from sahayak.models.opportunity import OpportunityCategory


class Route(str, Enum):
    JOB_SEARCH = "job_search"
    SCHEME_SEARCH = "scheme_search"
    EDUCATION_SEARCH = "education_search"
    PROFILE_UPDATE = "profile_update"
    CLARIFICATION = "clarification"
    HELP = "help"
    ESCALATION = "escalation"


SEARCH_ROUTES = {
    IntentCategory.JOB: (Route.JOB_SEARCH, OpportunityCategory.JOB),
    IntentCategory.SCHEME: (Route.SCHEME_SEARCH, OpportunityCategory.SCHEME),
    IntentCategory.EDUCATION: (Route.EDUCATION_SEARCH, OpportunityCategory.PROGRAM),
}


@dataclass(frozen=True)
class RouteDecision:
    route: Route
    entities: ExtractedEntities
    topic: str | None = None
    topic_changed: bool = False
    # True when the intent itself could not be resolved (counts as a failure)
    needs_clarification: bool = False
    reason: str = ""

    @property
    def search_category(self) -> OpportunityCategory | None:
        for route, category in SEARCH_ROUTES.values():
            if route == self.route:
                return category
        return None


def require_confident(classification: Classification, threshold: float) -> None:
    """Raise IntentAmbiguousError for low-confidence or ambiguous output."""
    if classification.category == IntentCategory.AMBIGUOUS or classification.confidence < threshold:
        raise IntentAmbiguousError(classification.confidence, threshold)


def route_intent(
    classification: Classification,
    context: ConversationContext,
    settings: Settings | None = None,
) -> RouteDecision:
    """
    Decision table:
      confidence < threshold or ambiguous → clarification
        (escalation when this failure reaches the escalation threshold)
      clarification                       → follow-up on presented results
      job / scheme / education            → search, flagging topic change
      profile_update / help               → their own paths, topic untouched
    """
    settings = settings or get_settings()
    entities = classification.entities

    try:
        require_confident(classification, settings.intent_confidence_threshold)
    except IntentAmbiguousError as e:
        failures = context.failure_count + 1
        route = Route.ESCALATION if failures >= settings.escalate_after_failures else Route.CLARIFICATION
        return RouteDecision(route, entities, needs_clarification=True, reason=str(e))

    category = classification.category

    if category in SEARCH_ROUTES:
        route, _ = SEARCH_ROUTES[category]
        topic = category.value
        changed = context.current_topic is not None and context.current_topic != topic
        return RouteDecision(route, entities, topic=topic, topic_changed=changed, reason=f"search:{topic}")

    if category == IntentCategory.CLARIFICATION:
        return RouteDecision(Route.CLARIFICATION, entities, reason="follow-up")

    if category == IntentCategory.PROFILE_UPDATE:
        return RouteDecision(Route.PROFILE_UPDATE, entities, reason="profile-update")

    if category == IntentCategory.HELP:
        return RouteDecision(Route.HELP, entities, reason="help")

    raise ValueError(f"Unroutable intent category: {category!r}")
