"""
Sahayak — Profile Store
The core is the only authority on profile validation; the repository behind it
is a pass-through persistence layer.

  - create / update validate through one rule table (PROFILE_FIELD_RULES)
  - update replaces exactly one field, everything else is left as stored
  - same-field races resolve last-write-wins on the update timestamp and the
    losing caller is told its value was superseded
  - history appends are idempotent per (opportunity id, action)
  - writes for one citizen are serialised by a per-citizen lock
"""

import asyncio
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from sahayak.config import Settings, get_settings
from sahayak.errors import ProfileExistsError, ProfileNotFoundError, ValidationError
from sahayak.models.profile import CitizenProfile, EmploymentStatus, HistoryAction, Language, utcnow
from sahayak.services.providers.base import ProfileRepository
from sahayak.services.upstream import call_upstream
from sahayak.utils.logger import logger


# ──────────────────────────────────────────────────────────────
# Validation table
# ──────────────────────────────────────────────────────────────

class _Invalid(Exception):
    pass


@dataclass(frozen=True)
class FieldRule:
    """Constraint text + a normaliser that raises _Invalid on bad input."""
    constraint: str
    normalize: Callable[[Any], Any]
    nullable: bool = False


def _int_in(low: int, high: int | None = None) -> Callable[[Any], int]:
    def check(value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _Invalid
        if value < low or (high is not None and value > high):
            raise _Invalid
        return value
    return check


def _non_negative_number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise _Invalid
    return float(value)


def _non_empty_str(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise _Invalid
    return value.strip()


def _choice(enum_cls) -> Callable[[Any], Any]:
    def check(value: Any):
        try:
            return enum_cls(value)
        except ValueError:
            raise _Invalid from None
    return check


_PHONE_RE = re.compile(r"^\+?\d{10,15}$")


def _phone(value: Any) -> str:
    if not isinstance(value, str):
        raise _Invalid
    compact = re.sub(r"[\s-]", "", value)
    if not _PHONE_RE.match(compact):
        raise _Invalid
    return compact


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) and v.strip() for v in value):
        raise _Invalid
    return list(dict.fromkeys(v.strip() for v in value))


PROFILE_FIELD_RULES: dict[str, FieldRule] = {
    "age": FieldRule("an integer between 0 and 150", _int_in(0, 150)),
    "location": FieldRule("a non-empty string", _non_empty_str),
    "income": FieldRule("a number >= 0", _non_negative_number, nullable=True),
    "employment_status": FieldRule(
        "one of: " + ", ".join(s.value for s in EmploymentStatus), _choice(EmploymentStatus)
    ),
    "preferred_language": FieldRule(
        "one of: " + ", ".join(l.value for l in Language), _choice(Language)
    ),
    "dependents": FieldRule("an integer >= 0", _int_in(0), nullable=True),
    "experience_years": FieldRule("a number >= 0", _non_negative_number, nullable=True),
    "name": FieldRule("a non-empty string", _non_empty_str, nullable=True),
    "phone": FieldRule("10-15 digits with optional leading +", _phone, nullable=True),
    "gender": FieldRule("a non-empty string", _non_empty_str, nullable=True),
    "caste_category": FieldRule("a non-empty string", _non_empty_str, nullable=True),
    "education_level": FieldRule("a non-empty string", _non_empty_str, nullable=True),
    "education_field": FieldRule("a non-empty string", _non_empty_str, nullable=True),
    "interests": FieldRule("a list of non-empty strings", _str_list),
    "skills": FieldRule("a list of non-empty strings", _str_list),
    "career_goals": FieldRule("a list of non-empty strings", _str_list),
}


def validate_field(field: str, value: Any) -> Any:
    """Validate and normalise one profile field via the rule table."""
    rule = PROFILE_FIELD_RULES.get(field)
    if rule is None:
        raise ValidationError(field, "an updatable profile field", value)
    if value is None:
        if rule.nullable:
            return None
        raise ValidationError(field, rule.constraint, value)
    try:
        return rule.normalize(value)
    except _Invalid:
        raise ValidationError(field, rule.constraint, value) from None


@dataclass(frozen=True)
class ProfileUpdate:
    """Outcome of a single-field update."""
    profile: CitizenProfile
    field: str
    applied: bool
    superseded: bool = False


# ──────────────────────────────────────────────────────────────
# Store
# ──────────────────────────────────────────────────────────────

class ProfileStore:
    def __init__(self, repository: ProfileRepository, settings: Settings | None = None):
        self.repository = repository
        self.settings = settings or get_settings()
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def _load(self, citizen_id: str) -> CitizenProfile:
        profile = await call_upstream(
            self.repository.name, lambda: self.repository.get(citizen_id), self.settings
        )
        if profile is None:
            raise ProfileNotFoundError(citizen_id)
        return profile

    async def _save(self, profile: CitizenProfile) -> None:
        await call_upstream(
            self.repository.name, lambda: self.repository.save(profile), self.settings
        )

    async def get(self, citizen_id: str) -> CitizenProfile:
        """Return the profile; ProfileNotFoundError means onboarding is needed."""
        return await self._load(citizen_id)

    async def create(self, citizen_id: str, fields: Mapping[str, Any] | None = None) -> CitizenProfile:
        """Create a profile from onboarding answers (same rules as update)."""
        cleaned = {name: validate_field(name, value) for name, value in (fields or {}).items()}

        async with self._locks[citizen_id]:
            existing = await call_upstream(
                self.repository.name, lambda: self.repository.get(citizen_id), self.settings
            )
            if existing is not None:
                raise ProfileExistsError(citizen_id)

            now = utcnow()
            profile = CitizenProfile(
                citizen_id=citizen_id,
                created_at=now,
                updated_at=now,
                field_timestamps={name: now for name in cleaned},
            ).model_copy(update=cleaned)
            await self._save(profile)

        logger.info(f"👤 Profile created for {citizen_id}: {sorted(cleaned)}")
        return profile

    async def update(
        self,
        citizen_id: str,
        field: str,
        value: Any,
        updated_at: datetime | None = None,
    ) -> ProfileUpdate:
        """
        Replace exactly one field. A write stamped older than the field's
        current stamp loses and comes back with superseded=True.
        """
        cleaned = validate_field(field, value)
        stamp = updated_at or utcnow()
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)

        async with self._locks[citizen_id]:
            profile = await self._load(citizen_id)

            current_stamp = profile.field_timestamps.get(field)
            if current_stamp is not None and stamp < current_stamp:
                logger.info(f"👤 Update of {field} for {citizen_id} superseded by a newer write")
                return ProfileUpdate(profile=profile, field=field, applied=False, superseded=True)

            updated = profile.model_copy(
                update={
                    field: cleaned,
                    "updated_at": max(stamp, profile.updated_at),
                    "field_timestamps": {**profile.field_timestamps, field: stamp},
                }
            )
            await self._save(updated)

        logger.debug(f"👤 Profile {citizen_id}: {field} updated")
        return ProfileUpdate(profile=updated, field=field, applied=True)

    async def append_history(
        self, citizen_id: str, opportunity_id: str, action: HistoryAction | str
    ) -> tuple[CitizenProfile, bool]:
        """
        Record that the citizen viewed / saved / applied to an opportunity.
        Returns (profile, appended); repeating a pair is a no-op.
        """
        try:
            kind = HistoryAction(action)
        except ValueError:
            raise ValidationError(
                "action", "one of: " + ", ".join(a.value for a in HistoryAction), action
            ) from None
        if not isinstance(opportunity_id, str) or not opportunity_id.strip():
            raise ValidationError("opportunity_id", "a non-empty string", opportunity_id)

        async with self._locks[citizen_id]:
            profile = await self._load(citizen_id)
            entries = profile.history(kind)
            if opportunity_id in entries:
                return profile, False

            updated = profile.model_copy(
                update={kind.value: [*entries, opportunity_id], "updated_at": utcnow()}
            )
            await self._save(updated)

        logger.debug(f"📌 {citizen_id} {kind.value} {opportunity_id}")
        return updated, True
