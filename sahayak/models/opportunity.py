"""
Sahayak — Pydantic Models for Opportunities (Jobs, Schemes, Programs)

Opportunities are owned by the external opportunity store; the core only reads
them, so every model here is frozen. The three kinds form a closed variant
discriminated by ``category``. Eligibility criteria are likewise a closed
variant discriminated by ``kind``; raw criteria bags coming from the store are
parsed into it and anything that does not fit becomes an
``UnrecognizedCriterion`` (always unmatched).
"""

from datetime import date
from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sahayak.models.profile import EmploymentStatus, Language


IMMEDIATE_ASSISTANCE_TAG = "immediate-assistance"

# Location values that mean "available everywhere".
NATIONWIDE_LOCATIONS = {"all india", "pan india", "nationwide", "central", "remote", "anywhere"}


class OpportunityCategory(str, Enum):
    JOB = "job"
    SCHEME = "scheme"
    PROGRAM = "program"


class LocalizedText(BaseModel):
    """Default-language text with an optional alternate-language rendering."""
    model_config = ConfigDict(frozen=True)

    default: str
    default_language: Language = Language.ENGLISH
    alternate: Optional[str] = None
    alternate_language: Language = Language.HINDI

    def select(self, preferred: Language) -> tuple[str, bool]:
        """Return (text, is_fallback) for the citizen's preferred language."""
        if preferred == self.default_language:
            return self.default, False
        if preferred == self.alternate_language and self.alternate:
            return self.alternate, False
        return self.default, True


def _coerce_localized(value: Any) -> Any:
    if isinstance(value, str):
        return {"default": value}
    return value


# ── Eligibility criteria ─────────────────────────────────────────────────────

class CriterionName(str, Enum):
    AGE = "age"
    INCOME = "income"
    GENDER = "gender"
    CASTE = "caste"
    LOCATION = "location"
    EDUCATION = "education"
    EMPLOYMENT_STATUS = "employment_status"


# criterion name -> (predicate kind, profile attribute)
CRITERION_BINDINGS: dict[CriterionName, tuple[str, str]] = {
    CriterionName.AGE: ("range", "age"),
    CriterionName.INCOME: ("range", "income"),
    CriterionName.GENDER: ("membership", "gender"),
    CriterionName.CASTE: ("membership", "caste_category"),
    CriterionName.LOCATION: ("membership", "location"),
    CriterionName.EDUCATION: ("membership", "education_level"),
    CriterionName.EMPLOYMENT_STATUS: ("enum", "employment_status"),
}


def _require_kind(name: CriterionName, kind: str) -> CriterionName:
    expected = CRITERION_BINDINGS[name][0]
    if expected != kind:
        raise ValueError(f"criterion '{name.value}' is a {expected} criterion, not {kind}")
    return name


class RangeCriterion(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["range"] = "range"
    name: CriterionName
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @field_validator("name")
    @classmethod
    def _range_name(cls, v: CriterionName) -> CriterionName:
        return _require_kind(v, "range")

    def describe(self) -> str:
        if self.minimum is not None and self.maximum is not None:
            return f"{self.minimum:g}-{self.maximum:g}"
        if self.minimum is not None:
            return f"at least {self.minimum:g}"
        if self.maximum is not None:
            return f"at most {self.maximum:g}"
        return "any"


class MembershipCriterion(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["membership"] = "membership"
    name: CriterionName
    allowed: tuple[str, ...]

    @field_validator("name")
    @classmethod
    def _membership_name(cls, v: CriterionName) -> CriterionName:
        return _require_kind(v, "membership")

    def describe(self) -> str:
        return "one of: " + ", ".join(self.allowed)


class EnumCriterion(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["enum"] = "enum"
    name: CriterionName
    expected: EmploymentStatus

    @field_validator("name")
    @classmethod
    def _enum_name(cls, v: CriterionName) -> CriterionName:
        return _require_kind(v, "enum")

    def describe(self) -> str:
        return self.expected.value


class UnrecognizedCriterion(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["unrecognized"] = "unrecognized"
    name: str
    raw: Any = None

    def describe(self) -> str:
        return f"unrecognized requirement ({self.raw!r})"


Criterion = Annotated[
    Union[RangeCriterion, MembershipCriterion, EnumCriterion, UnrecognizedCriterion],
    Field(discriminator="kind"),
]


def criterion_label(criterion: Any) -> str:
    name = criterion.name
    return name.value if isinstance(name, CriterionName) else str(name)


def _parse_one(name: str, value: Any):
    try:
        criterion_name = CriterionName(name.strip().lower())
    except ValueError:
        return UnrecognizedCriterion(name=name, raw=value)

    kind = CRITERION_BINDINGS[criterion_name][0]

    if kind == "range":
        bounds: tuple[Any, Any] | None = None
        if isinstance(value, Mapping) and ({"min", "max"} & set(value)):
            bounds = (value.get("min"), value.get("max"))
        elif isinstance(value, (list, tuple)) and len(value) == 2:
            bounds = (value[0], value[1])
        if bounds is not None and all(b is None or isinstance(b, (int, float)) for b in bounds):
            return RangeCriterion(name=criterion_name, minimum=bounds[0], maximum=bounds[1])

    elif kind == "membership":
        if isinstance(value, str) and value.strip():
            return MembershipCriterion(name=criterion_name, allowed=(value.strip(),))
        if isinstance(value, (list, tuple, set)) and value and all(isinstance(v, str) for v in value):
            return MembershipCriterion(name=criterion_name, allowed=tuple(sorted(v.strip() for v in value)))

    elif kind == "enum":
        try:
            return EnumCriterion(name=criterion_name, expected=EmploymentStatus(str(value).strip().lower()))
        except ValueError:
            pass

    return UnrecognizedCriterion(name=name, raw=value)


def parse_criteria(raw: Mapping[str, Any] | None) -> list:
    """
    Parse a loosely-typed criteria bag into the closed criterion variant.

        {"age": {"min": 18, "max": 40}, "gender": ["female"],
         "employment_status": "unemployed", "landholding": 2}

    Unknown names and shapes that do not fit the name's kind are kept as
    UnrecognizedCriterion so they still count against eligibility.
    """
    if not raw:
        return []
    return [_parse_one(str(name), value) for name, value in raw.items()]


# ── Opportunities ────────────────────────────────────────────────────────────

class OpportunityBase(BaseModel):
    """Fields shared by every opportunity kind."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: LocalizedText
    description: LocalizedText = LocalizedText(default="")
    location: Optional[str] = None
    deadline: Optional[date] = None
    tags: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    education_levels: tuple[str, ...] = ()

    # Contact channels (any of these makes the opportunity SMS-able)
    website: Optional[str] = None
    phone: Optional[str] = None
    application_url: Optional[str] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def _localize(cls, v: Any) -> Any:
        return _coerce_localized(v)

    @property
    def is_nationwide(self) -> bool:
        return not self.location or self.location.strip().lower() in NATIONWIDE_LOCATIONS

    @property
    def immediate_assistance(self) -> bool:
        return IMMEDIATE_ASSISTANCE_TAG in self.tags

    @property
    def contact_fields(self) -> dict[str, str]:
        contacts = {
            "website": self.website,
            "phone": self.phone,
            "application_url": self.application_url,
        }
        return {k: v for k, v in contacts.items() if v}

    @property
    def match_terms(self) -> set[str]:
        return {t.strip().lower() for t in (*self.keywords, *self.tags) if t and t.strip()}


class Job(OpportunityBase):
    category: Literal["job"] = "job"
    company: str
    requirements: tuple[str, ...] = ()
    required_skills: tuple[str, ...] = ()
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None

    @property
    def match_terms(self) -> set[str]:
        skills = {s.strip().lower() for s in self.required_skills if s and s.strip()}
        return super().match_terms | skills


def _coerce_criteria(value: Any) -> Any:
    if isinstance(value, Mapping):
        return parse_criteria(value)
    return value


class Scheme(OpportunityBase):
    category: Literal["scheme"] = "scheme"
    ministry: Optional[str] = None
    benefits: LocalizedText = LocalizedText(default="")
    documents_required: tuple[str, ...] = ()
    application_process: LocalizedText = LocalizedText(default="")
    criteria: tuple[Criterion, ...] = ()

    @field_validator("benefits", "application_process", mode="before")
    @classmethod
    def _localize_scheme_text(cls, v: Any) -> Any:
        return _coerce_localized(v)

    @field_validator("criteria", mode="before")
    @classmethod
    def _parse_criteria_bag(cls, v: Any) -> Any:
        return _coerce_criteria(v)


class Program(OpportunityBase):
    category: Literal["program"] = "program"
    institution: str
    duration: Optional[str] = None
    fees: Optional[float] = None
    scholarship_available: bool = False
    criteria: tuple[Criterion, ...] = ()

    @field_validator("criteria", mode="before")
    @classmethod
    def _parse_criteria_bag(cls, v: Any) -> Any:
        return _coerce_criteria(v)


Opportunity = Annotated[Union[Job, Scheme, Program], Field(discriminator="category")]


def opportunity_category(opportunity: Job | Scheme | Program) -> OpportunityCategory:
    return OpportunityCategory(opportunity.category)
