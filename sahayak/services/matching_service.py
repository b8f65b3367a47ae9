"""
Sahayak — Matching Service (Ranking Engine)
Filters, scores and ranks opportunities of one category against a profile.

Scoring is explainable and deterministic:
  base score = mean of three soft dimensions in [0, 1]
    (skills/interests overlap, location proximity tier, education fit)
  schemes/programs: eligible always above ineligible, whatever the base score
  immediate-assistance opportunities lead their group when the citizen is
    in urgent need (unemployed, or income below the poverty threshold)
  remaining ties broken by
    1. scholarship availability when the citizen is in financial need (programs)
    2. nearer deadline
    3. opportunity id
Every result carries reasons, the first naming what put it at its rank.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from sahayak.config import Settings, get_settings
from sahayak.models.opportunity import Job, OpportunityCategory, Program, Scheme
from sahayak.models.profile import CitizenProfile, EmploymentStatus
from sahayak.models.results import EligibilityResult, MatchResult, SearchCriteria
from sahayak.services.eligibility_engine import EligibilityEngine
from sahayak.utils.logger import logger


SOFT_DIMENSIONS = 3
NATIONWIDE_TIER = 0.5


@dataclass(frozen=True)
class NeedSignals:
    urgent: bool
    financial: bool


def need_signals(profile: CitizenProfile, poverty_threshold: float | None) -> NeedSignals:
    below_poverty = (
        poverty_threshold is not None
        and profile.income is not None
        and profile.income < poverty_threshold
    )
    return NeedSignals(
        urgent=profile.employment_status == EmploymentStatus.UNEMPLOYED or below_poverty,
        financial=below_poverty or (profile.dependents or 0) > 0,
    )


def _norm(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


@dataclass
class _Scored:
    opportunity: Job | Scheme | Program
    base: float
    eligibility: EligibilityResult | None
    soft_reasons: list[str]
    sort_key: tuple
    lead_reason: str | None


class MatchingService:
    def __init__(self, settings: Settings | None = None, eligibility: EligibilityEngine | None = None):
        self.settings = settings or get_settings()
        self.eligibility = eligibility or EligibilityEngine()

    # ──────────────────────────────────────────────────────────────
    # Soft dimensions
    # ──────────────────────────────────────────────────────────────

    def _skills_dimension(self, opportunity, profile: CitizenProfile, criteria: SearchCriteria) -> tuple[float, list[str]]:
        wanted = profile.terms | {k.lower() for k in criteria.keywords}
        overlap = sorted(wanted & opportunity.match_terms)
        if not overlap:
            return 0.0, []
        noun = "required skill" if isinstance(opportunity, Job) and set(overlap) & {
            s.lower() for s in opportunity.required_skills
        } else "interest"
        return 1.0, [f"matches {noun}: {', '.join(overlap)}"]

    def _location_dimension(self, opportunity, profile: CitizenProfile, criteria: SearchCriteria) -> tuple[float, list[str]]:
        wanted = _norm(criteria.location) or _norm(profile.location)
        if opportunity.is_nationwide:
            return NATIONWIDE_TIER, ["available nationwide"]
        if wanted and _norm(opportunity.location) == wanted:
            return 1.0, [f"located in {opportunity.location}"]
        return 0.0, []

    def _education_dimension(self, opportunity, profile: CitizenProfile, criteria: SearchCriteria) -> tuple[float, list[str]]:
        levels = {_norm(l) for l in opportunity.education_levels}
        if not levels:
            return 1.0, []
        mine = _norm(criteria.education) or _norm(profile.education_level)
        if mine and mine in levels:
            return 1.0, [f"fits education level: {mine}"]
        return 0.0, []

    def base_score(self, opportunity, profile: CitizenProfile, criteria: SearchCriteria) -> tuple[float, list[str]]:
        total = 0.0
        reasons: list[str] = []
        for dimension in (self._skills_dimension, self._location_dimension, self._education_dimension):
            value, why = dimension(opportunity, profile, criteria)
            total += value
            reasons.extend(why)
        return round(total / SOFT_DIMENSIONS, 6), reasons

    # ──────────────────────────────────────────────────────────────
    # Filtering & ranking
    # ──────────────────────────────────────────────────────────────

    @staticmethod
    def _passes_filters(opportunity, category: OpportunityCategory, criteria: SearchCriteria, today: date) -> bool:
        if opportunity.category != category.value:
            return False
        if opportunity.deadline is not None and opportunity.deadline < today:
            return False
        if criteria.tags and not set(criteria.tags) <= set(opportunity.tags):
            return False
        return True

    def _score(self, opportunity, profile: CitizenProfile, criteria: SearchCriteria, needs: NeedSignals) -> _Scored:
        base, soft_reasons = self.base_score(opportunity, profile, criteria)

        if isinstance(opportunity, Job):
            eligibility = None
        elif isinstance(opportunity, (Scheme, Program)):
            eligibility = self.eligibility.check(opportunity, profile)
        else:
            raise TypeError(f"Unsupported opportunity type: {type(opportunity).__name__}")

        urgent_boost = needs.urgent and opportunity.immediate_assistance
        scholarship_boost = (
            isinstance(opportunity, Program) and needs.financial and opportunity.scholarship_available
        )
        ineligible = eligibility is not None and not eligibility.eligible

        sort_key = (
            1 if ineligible else 0,
            0 if urgent_boost else 1,
            -base,
            0 if scholarship_boost else 1,
            opportunity.deadline.toordinal() if opportunity.deadline else float("inf"),
            opportunity.id,
        )

        if eligibility is not None and eligibility.eligible:
            lead = (
                "eligible and tagged as immediate assistance" if urgent_boost
                else f"eligible: meets all {len(eligibility.matched_criteria)} criteria"
            )
        elif ineligible:
            lead = "not eligible: does not meet " + ", ".join(eligibility.unmatched_criteria)
        elif urgent_boost:
            lead = "tagged as immediate assistance for urgent need"
        else:
            lead = None

        extra = list(soft_reasons)
        if scholarship_boost:
            extra.append("scholarship available for financial need")
        if opportunity.deadline:
            extra.append(f"deadline {opportunity.deadline.isoformat()}")

        return _Scored(opportunity, base, eligibility, extra, sort_key, lead)

    def search(
        self,
        category: OpportunityCategory,
        profile: CitizenProfile,
        criteria: SearchCriteria,
        candidates: Iterable,
        today: date | None = None,
    ) -> list[MatchResult]:
        """
        Rank candidates of one category. Returns [] when nothing qualifies;
        never relaxes criteria on its own.
        """
        effective_today = today or date.today()
        needs = need_signals(profile, self.settings.poverty_income_threshold)

        scored = [
            self._score(o, profile, criteria, needs)
            for o in candidates
            if self._passes_filters(o, category, criteria, effective_today)
        ]
        scored.sort(key=lambda s: s.sort_key)

        results = []
        for s in scored:
            reasons = ([s.lead_reason] if s.lead_reason else []) + s.soft_reasons
            if not reasons:
                reasons = [f"matches search category: {category.value}"]
            results.append(MatchResult(s.opportunity, s.base, reasons, s.eligibility))

        if criteria.limit:
            results = results[: criteria.limit]

        logger.debug(
            f"🎯 {category.value} search: {len(results)} ranked "
            f"(urgent={needs.urgent}, financial={needs.financial})"
        )
        return results

    # ──────────────────────────────────────────────────────────────
    # Alternatives for an ineligible scheme
    # ──────────────────────────────────────────────────────────────

    def suggest_alternatives(
        self,
        target: Scheme | Program,
        eligibility: EligibilityResult,
        candidates: Iterable,
        profile: CitizenProfile,
        limit: int = 3,
    ) -> list[MatchResult]:
        """
        Schemes of the same kind that share at least one criterion the
        citizen matched on the target (and also match it there).
        """
        matched_on_target = set(eligibility.matched_criteria)
        if not matched_on_target:
            return []

        ranked = []
        for candidate in candidates:
            if candidate.id == target.id or candidate.category != target.category:
                continue
            result = self.eligibility.check(candidate, profile)
            shared = sorted(matched_on_target & set(result.matched_criteria))
            if not shared:
                continue
            lead = "eligible alternative" if result.eligible else "partial alternative"
            reasons = [f"{lead} sharing matched criteria: {', '.join(shared)}"]
            key = (0 if result.eligible else 1, -len(shared), candidate.id)
            ranked.append((key, MatchResult(candidate, len(shared) / max(len(candidate.criteria), 1), reasons, result)))

        ranked.sort(key=lambda pair: pair[0])
        return [r for _, r in ranked[:limit]]
