"""
Sahayak — Error Taxonomy
Every error the core raises is recoverable: each kind maps to a conversational
recovery action (correction request, onboarding, clarification, "temporarily
unavailable", escalation) and never to a crash.
"""


class SahayakError(Exception):
    """Base class for all conversation-core errors."""

    recovery = "retry"


class ValidationError(SahayakError):
    """A profile field value violates its contract."""

    recovery = "correction"

    def __init__(self, field: str, constraint: str, value: object = None):
        self.field = field
        self.constraint = constraint
        self.value = value
        super().__init__(f"Invalid value for '{field}': must be {constraint}.")

    def to_dict(self) -> dict:
        return {"field": self.field, "constraint": self.constraint}


class NotFoundError(SahayakError):
    """A profile, opportunity or session does not exist."""

    recovery = "no_results"


class ProfileNotFoundError(NotFoundError):
    recovery = "onboarding"

    def __init__(self, citizen_id: str):
        self.citizen_id = citizen_id
        super().__init__(f"No profile for citizen '{citizen_id}'.")


class OpportunityNotFoundError(NotFoundError):
    def __init__(self, opportunity_id: str):
        self.opportunity_id = opportunity_id
        super().__init__(f"Opportunity '{opportunity_id}' not found.")


class SessionNotFoundError(NotFoundError):
    recovery = "new_session"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' not found.")


class ProfileExistsError(SahayakError):
    recovery = "use_existing"

    def __init__(self, citizen_id: str):
        self.citizen_id = citizen_id
        super().__init__(f"A profile for citizen '{citizen_id}' already exists.")


class ReferenceUnresolvedError(SahayakError):
    """A pronoun or ordinal could not be mapped to a presented opportunity."""

    recovery = "clarification"

    def __init__(self, phrase: str | None):
        self.phrase = phrase
        super().__init__(f"Could not resolve reference '{phrase}'.")


class UpstreamUnavailableError(SahayakError):
    """An external collaborator failed or exceeded its latency budget."""

    recovery = "temporarily_unavailable"

    def __init__(self, collaborator: str, cause: BaseException | None = None):
        self.collaborator = collaborator
        self.cause = cause
        detail = f": {cause!r}" if cause is not None else ""
        super().__init__(f"Upstream '{collaborator}' unavailable{detail}")


class IntentAmbiguousError(SahayakError):
    """Classifier confidence fell below the routing threshold."""

    recovery = "clarification"

    def __init__(self, confidence: float, threshold: float):
        self.confidence = confidence
        self.threshold = threshold
        super().__init__(
            f"Intent confidence {confidence:.2f} below threshold {threshold:.2f}."
        )


class RepeatedFailureError(SahayakError):
    """Too many consecutive unresolved intents; hand off to a human."""

    recovery = "escalation"

    def __init__(self, failures: int):
        self.failures = failures
        super().__init__(f"{failures} consecutive unresolved intents.")
