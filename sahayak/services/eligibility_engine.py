"""
Sahayak — Eligibility Engine
The GUARD. Criterion-by-criterion proof of whether a profile qualifies for a
scheme or program.

  1. Every declared criterion is evaluated independently.
  2. Missing profile data never satisfies a requirement; it is reported as
     "missing", separately from "present but out of range / not allowed".
  3. Eligible iff every criterion matched. Partial matches are never eligible.

Pure functions of their inputs: safe to call concurrently, nothing cached.
"""

from typing import Any, Iterable

from sahayak.models.opportunity import (
    CRITERION_BINDINGS,
    CriterionName,
    EnumCriterion,
    MembershipCriterion,
    RangeCriterion,
    UnrecognizedCriterion,
    criterion_label,
)
from sahayak.models.profile import CitizenProfile
from sahayak.models.results import CriterionCheck, CriterionOutcome, EligibilityResult


def _normalize_text(value: Any) -> str | None:
    if value is None:
        return None
    if hasattr(value, "value"):
        value = value.value
    normalized = str(value).strip().lower()
    return normalized or None


def _profile_value(criterion_name: CriterionName, profile: CitizenProfile) -> Any:
    attribute = CRITERION_BINDINGS[criterion_name][1]
    return getattr(profile, attribute, None)


def check_criterion(criterion, profile: CitizenProfile) -> CriterionCheck:
    """Evaluate a single criterion against a profile."""
    label = criterion_label(criterion)

    if isinstance(criterion, UnrecognizedCriterion):
        return CriterionCheck(label, CriterionOutcome.UNRECOGNIZED, criterion.describe())

    user_value = _profile_value(criterion.name, profile)
    if user_value is None or (isinstance(user_value, str) and not user_value.strip()):
        return CriterionCheck(label, CriterionOutcome.MISSING, f"profile missing {label}")

    if isinstance(criterion, RangeCriterion):
        value = float(user_value)
        too_low = criterion.minimum is not None and value < criterion.minimum
        too_high = criterion.maximum is not None and value > criterion.maximum
        if too_low or too_high:
            return CriterionCheck(
                label,
                CriterionOutcome.OUT_OF_RANGE,
                f"{label} {user_value:g} outside required {criterion.describe()}",
            )
        return CriterionCheck(
            label, CriterionOutcome.MATCHED, f"{label} {user_value:g} within {criterion.describe()}"
        )

    if isinstance(criterion, MembershipCriterion):
        allowed = {_normalize_text(v) for v in criterion.allowed}
        if _normalize_text(user_value) in allowed:
            return CriterionCheck(label, CriterionOutcome.MATCHED, f"{label} '{user_value}' allowed")
        return CriterionCheck(
            label,
            CriterionOutcome.NOT_ALLOWED,
            f"{label} '{user_value}' not in {criterion.describe()}",
        )

    if isinstance(criterion, EnumCriterion):
        actual = _normalize_text(user_value)
        if actual == criterion.expected.value:
            return CriterionCheck(label, CriterionOutcome.MATCHED, f"{label} is {actual}")
        return CriterionCheck(
            label,
            CriterionOutcome.NOT_ALLOWED,
            f"{label} is {actual}, requires {criterion.expected.value}",
        )

    raise TypeError(f"Unsupported criterion type: {type(criterion).__name__}")


def _explain(eligible: bool, checks: list[CriterionCheck]) -> str:
    if not checks:
        return "No eligibility criteria declared; open to everyone."
    matched = [c.detail for c in checks if c.matched]
    unmatched = [c.detail for c in checks if not c.matched]
    parts = []
    if matched:
        parts.append("Matched: " + "; ".join(matched) + ".")
    if unmatched:
        parts.append("Not matched: " + "; ".join(unmatched) + ".")
    verdict = "Eligible" if eligible else "Not eligible"
    return f"{verdict}. " + " ".join(parts)


def evaluate_eligibility(criteria: Iterable, profile: CitizenProfile) -> EligibilityResult:
    """Compare a scheme/program's criteria set with a citizen profile."""
    checks = [check_criterion(c, profile) for c in criteria]
    matched = [c.criterion for c in checks if c.matched]
    unmatched = [c.criterion for c in checks if not c.matched]
    eligible = not unmatched
    return EligibilityResult(
        eligible=eligible,
        matched_criteria=matched,
        unmatched_criteria=unmatched,
        explanation=_explain(eligible, checks),
        checks=checks,
    )


class EligibilityEngine:
    """Convenience wrapper for opportunities that carry criteria."""

    def check(self, opportunity, profile: CitizenProfile) -> EligibilityResult:
        return evaluate_eligibility(getattr(opportunity, "criteria", ()), profile)
