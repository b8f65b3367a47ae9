"""
Sahayak — Response Assembler
Turns ranked results, eligibility outcomes and profile updates into the
structured ResponsePayload. Produces no prose: the downstream generator must
render every required field listed here.
"""

from typing import Iterable

from sahayak.config import Settings, get_settings
from sahayak.errors import ValidationError
from sahayak.models.conversation import ConversationContext
from sahayak.models.opportunity import (
    Job,
    LocalizedText,
    OpportunityCategory,
    Program,
    Scheme,
    criterion_label,
)
from sahayak.models.payload import (
    ClarificationContent,
    HistoryContent,
    OpportunityContent,
    PayloadKind,
    ProfileUpdateContent,
    ResponsePayload,
    SmsOffer,
    ValidationContent,
)
from sahayak.models.profile import CitizenProfile, HistoryAction, Language
from sahayak.models.results import EligibilityResult, MatchResult, SearchCriteria


REQUIRED_FIELDS: dict[OpportunityCategory, tuple[str, ...]] = {
    OpportunityCategory.JOB: ("title", "company", "location", "key_requirements", "salary_range"),
    OpportunityCategory.SCHEME: (
        "name", "benefits", "eligibility_criteria", "required_documents", "application_process",
    ),
    OpportunityCategory.PROGRAM: ("name", "institution", "duration", "fees", "eligibility", "deadline"),
}

HELP_TOPICS = ["job_search", "scheme_search", "education_search", "eligibility_check", "profile_update", "save_opportunity"]

# Minimal onboarding answers needed before matching makes sense.
ONBOARDING_FIELDS = ["age", "location", "employment_status", "education_level"]


def _criteria_content(opportunity: Scheme | Program) -> list[dict]:
    return [
        {"criterion": criterion_label(c), "kind": c.kind, "requirement": c.describe()}
        for c in opportunity.criteria
    ]


class _Localizer:
    """Picks preferred-language text and remembers which fields fell back."""

    def __init__(self, language: Language):
        self.language = language
        self.fallback_fields: list[str] = []

    def __call__(self, field: str, text: LocalizedText) -> str:
        value, fallback = text.select(self.language)
        if fallback:
            self.fallback_fields.append(field)
        return value


class ResponseAssembler:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    # ──────────────────────────────────────────────────────────────
    # Opportunity content
    # ──────────────────────────────────────────────────────────────

    def _fields(self, opportunity, localize: _Localizer) -> dict:
        if isinstance(opportunity, Job):
            salary = None
            if opportunity.salary_min is not None or opportunity.salary_max is not None:
                salary = {"min": opportunity.salary_min, "max": opportunity.salary_max, "currency": "INR"}
            return {
                "title": localize("title", opportunity.name),
                "company": opportunity.company,
                "location": opportunity.location,
                "key_requirements": list(opportunity.requirements),
                "salary_range": salary,
            }
        if isinstance(opportunity, Scheme):
            return {
                "name": localize("name", opportunity.name),
                "benefits": localize("benefits", opportunity.benefits),
                "eligibility_criteria": _criteria_content(opportunity),
                "required_documents": list(opportunity.documents_required),
                "application_process": localize("application_process", opportunity.application_process),
            }
        if isinstance(opportunity, Program):
            return {
                "name": localize("name", opportunity.name),
                "institution": opportunity.institution,
                "duration": opportunity.duration,
                "fees": opportunity.fees,
                "eligibility": _criteria_content(opportunity),
                "deadline": opportunity.deadline.isoformat() if opportunity.deadline else None,
            }
        raise TypeError(f"Unsupported opportunity type: {type(opportunity).__name__}")

    def opportunity_content(
        self,
        opportunity,
        language: Language,
        rank: int | None = None,
        match: MatchResult | None = None,
        eligibility: EligibilityResult | None = None,
    ) -> OpportunityContent:
        category = OpportunityCategory(opportunity.category)
        localize = _Localizer(language)
        fields = self._fields(opportunity, localize)
        description = None
        if opportunity.description.default:
            description = localize("description", opportunity.description)

        required = list(REQUIRED_FIELDS[category])
        missing = [f for f in required if f not in fields]
        if missing:
            raise ValueError(f"{category.value} content missing required fields: {missing}")

        contacts = opportunity.contact_fields
        eligibility = eligibility or (match.eligibility if match else None)
        return OpportunityContent(
            opportunity_id=opportunity.id,
            category=category,
            rank=rank,
            required_fields=required,
            fields=fields,
            description=description,
            reasons=list(match.reasons) if match else [],
            score=match.score if match else None,
            eligibility=eligibility.to_dict() if eligibility else None,
            language=language,
            language_fallback=bool(localize.fallback_fields),
            fallback_fields=localize.fallback_fields,
            sms=SmsOffer(offer=bool(contacts), contacts=contacts),
        )

    # ──────────────────────────────────────────────────────────────
    # Payloads
    # ──────────────────────────────────────────────────────────────

    def _payload(
        self,
        context: ConversationContext,
        kind: PayloadKind,
        language: Language | None = None,
        route: str | None = None,
        **extra,
    ) -> ResponsePayload:
        payload = ResponsePayload(
            session_id=context.session_id,
            citizen_id=context.citizen_id,
            kind=kind,
            language=language or context.language,
            route=route,
            simplify=context.clarification_count >= self.settings.simplify_after_clarifications,
            escalate=context.failure_count >= self.settings.escalate_after_failures,
            session_renewed=context.renewed_from_expired,
            **extra,
        )
        payload.sms_offer = any(o.sms.offer for o in (*payload.opportunities, *payload.alternatives))
        return payload

    def results(
        self,
        context: ConversationContext,
        matches: list[MatchResult],
        criteria: SearchCriteria,
        language: Language,
        route: str | None = None,
        topic_changed: bool = False,
    ) -> ResponsePayload:
        if not matches:
            # Matcher never relaxes criteria; tell the generator whether
            # broadening is an option or the catalogue is simply empty.
            return self._payload(
                context,
                PayloadKind.NO_RESULTS,
                language,
                route,
                search_criteria=criteria.to_dict(),
                suggest_broaden=criteria.is_narrowed,
                topic_changed=topic_changed,
                reasoning=["no opportunities matched the search criteria"],
            )

        contents = [
            self.opportunity_content(m.opportunity, language, rank=i, match=m)
            for i, m in enumerate(matches, start=1)
        ]
        return self._payload(
            context,
            PayloadKind.RESULTS,
            language,
            route,
            opportunities=contents,
            search_criteria=criteria.to_dict(),
            topic_changed=topic_changed,
            reasoning=[m.reasons[0] for m in matches],
        )

    def details(
        self,
        context: ConversationContext,
        opportunity,
        language: Language,
        eligibility: EligibilityResult | None = None,
        alternatives: Iterable[MatchResult] = (),
        route: str | None = None,
    ) -> ResponsePayload:
        alternative_contents = [
            self.opportunity_content(a.opportunity, language, rank=i, match=a)
            for i, a in enumerate(alternatives, start=1)
        ]
        kind = PayloadKind.ELIGIBILITY if eligibility is not None else PayloadKind.DETAILS
        reasoning = [eligibility.explanation] if eligibility is not None else []
        reasoning.extend(a.reasons[0] for a in alternative_contents if a.reasons)
        return self._payload(
            context,
            kind,
            language,
            route,
            opportunities=[self.opportunity_content(opportunity, language, eligibility=eligibility)],
            alternatives=alternative_contents,
            eligibility=eligibility.to_dict() if eligibility is not None else None,
            reasoning=reasoning,
        )

    def clarification(
        self,
        context: ConversationContext,
        reason: str,
        phrase: str | None = None,
        route: str | None = None,
    ) -> ResponsePayload:
        escalating = context.failure_count >= self.settings.escalate_after_failures
        options = list(context.last_turn.surfaced_opportunities) if context.last_turn else []
        return self._payload(
            context,
            PayloadKind.ESCALATION if escalating else PayloadKind.CLARIFICATION,
            route=route,
            clarification=ClarificationContent(reason=reason, phrase=phrase, options=options),
            reasoning=[reason],
        )

    def profile_update(
        self,
        context: ConversationContext,
        profile: CitizenProfile,
        updated_fields: list[str],
        superseded_fields: list[str],
        route: str | None = None,
    ) -> ResponsePayload:
        return self._payload(
            context,
            PayloadKind.PROFILE_UPDATE,
            profile.preferred_language,
            route,
            profile_update=ProfileUpdateContent(
                updated_fields=updated_fields,
                superseded_fields=superseded_fields,
                profile={f: getattr(profile, f) for f in updated_fields},
            ),
        )

    def validation_error(
        self, context: ConversationContext, error: ValidationError, route: str | None = None
    ) -> ResponsePayload:
        return self._payload(
            context,
            PayloadKind.VALIDATION_ERROR,
            route=route,
            validation=ValidationContent(field=error.field, constraint=error.constraint),
            reasoning=[str(error)],
        )

    def history(
        self,
        context: ConversationContext,
        opportunity_id: str,
        action: HistoryAction,
        already_recorded: bool,
        route: str | None = None,
    ) -> ResponsePayload:
        return self._payload(
            context,
            PayloadKind.HISTORY,
            route=route,
            history=HistoryContent(
                opportunity_id=opportunity_id, action=action, already_recorded=already_recorded
            ),
        )

    def help(self, context: ConversationContext, route: str | None = None) -> ResponsePayload:
        return self._payload(context, PayloadKind.HELP, route=route, help_topics=list(HELP_TOPICS))

    def onboarding(self, context: ConversationContext) -> ResponsePayload:
        return self._payload(
            context,
            PayloadKind.ONBOARDING,
            help_topics=list(ONBOARDING_FIELDS),
            reasoning=["no profile on record; collect onboarding answers"],
        )

    def unavailable(self, context: ConversationContext, collaborator: str) -> ResponsePayload:
        return self._payload(
            context,
            PayloadKind.UNAVAILABLE,
            unavailable=collaborator,
            reasoning=[f"{collaborator} temporarily unavailable"],
        )
