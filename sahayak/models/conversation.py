"""
Sahayak — Conversation Context & Turns
Mutable, in-process session state. Turns hold opportunity identifiers only,
never opportunity objects.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from sahayak.models.profile import Language


DEFAULT_MAX_TURNS = 5


class SessionState(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"   # terminal for a context instance


@dataclass
class Turn:
    """One citizen input / system response exchange."""
    citizen_input: str
    intent: str
    response_summary: str = ""
    surfaced_opportunities: list[str] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)


@dataclass
class ConversationContext:
    """Everything the core remembers about one conversation stream."""
    session_id: str
    citizen_id: str
    language: Language = Language.ENGLISH
    max_turns: int = DEFAULT_MAX_TURNS
    turns: deque = field(default_factory=deque)
    current_topic: str | None = None
    # Most recently referenced first, no duplicates
    referenced_opportunities: list[str] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    # Repeated "please clarify" decisions (drives the simplify flag)
    clarification_count: int = 0
    # Consecutive turns whose intent could not be resolved at all (drives escalation)
    failure_count: int = 0
    state: SessionState = SessionState.ACTIVE
    renewed_from_expired: bool = False

    def __post_init__(self) -> None:
        self.turns = deque(self.turns, maxlen=self.max_turns)

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def last_turn(self) -> Turn | None:
        return self.turns[-1] if self.turns else None

    def idle_seconds(self, now: float) -> float:
        return now - self.last_activity

    def summary(self) -> dict:
        return {
            "session_id": self.session_id,
            "citizen_id": self.citizen_id,
            "language": self.language.value,
            "state": self.state.value,
            "turn_count": len(self.turns),
            "current_topic": self.current_topic,
            "referenced_opportunities": list(self.referenced_opportunities),
            "clarification_count": self.clarification_count,
            "failure_count": self.failure_count,
            "renewed_from_expired": self.renewed_from_expired,
        }
