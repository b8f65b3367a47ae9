"""
Sahayak — Context Tracker
Owns per-session conversational state on top of an injected SessionStore:
  - bounded turn history (ring of max_context_turns, oldest evicted)
  - reference resolution ("it", "that one", "the first one", "tell me more")
  - topic-change detection
  - clarification / failure counters
  - lazy idle expiry: ACTIVE → EXPIRED once idle > session_timeout_seconds,
    evaluated on access, no background timer. An expired context is never
    resurrected; the session gets a brand-new context for the same citizen.
"""

import re
import time
import uuid
from typing import Callable

from sahayak.config import Settings, get_settings
from sahayak.errors import RepeatedFailureError, SessionNotFoundError
from sahayak.models.conversation import ConversationContext, SessionState, Turn
from sahayak.models.profile import Language
from sahayak.services.session_store import SessionStore
from sahayak.utils.logger import logger


# ── Reference phrases (closed set) ───────────────────────────────────────────
ORDINALS = {
    "first": 1, "1st": 1,
    "second": 2, "2nd": 2,
    "third": 3, "3rd": 3,
    "fourth": 4, "4th": 4,
    "fifth": 5, "5th": 5,
}
ANAPHORIC_PHRASES = ("that one", "this one", "it")
DETAIL_PHRASES = ("tell me more", "more details")
ORDINAL_NOUNS = ("job", "scheme", "program", "programme", "course")

# An ordinal is a reference only as "first one" / "first scheme" or at the end
# of a clause; "first aid" is not.
_ORDINAL_RE = re.compile(
    r"\b(?:the\s+)?(" + "|".join(ORDINALS) + r")"
    r"(?:\s+(?:one|" + "|".join(ORDINAL_NOUNS) + r")\b|(?=\s*(?:[.,!?]|$)))",
    re.IGNORECASE,
)
_HEAD_RE = re.compile(
    r"\b(" + "|".join(re.escape(p) for p in (*DETAIL_PHRASES, *ANAPHORIC_PHRASES)) + r")\b",
    re.IGNORECASE,
)


def _normalize_phrase(phrase: str) -> str:
    return " ".join(re.sub(r"[^\w\s]", " ", phrase.lower()).split())


class ContextTracker:
    """Conversation state machine for every session in the given store."""

    def __init__(
        self,
        store: SessionStore,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self._clock = clock

    # ──────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────

    def create_session(
        self,
        citizen_id: str,
        language: Language = Language.ENGLISH,
        session_id: str | None = None,
    ) -> ConversationContext:
        """Allocate a new, empty context."""
        now = self._clock()
        self.store.prune(lambda c: c.idle_seconds(now) > self.settings.session_retention_seconds)
        context = ConversationContext(
            session_id=session_id or uuid.uuid4().hex,
            citizen_id=citizen_id,
            language=language,
            max_turns=self.settings.max_context_turns,
            created_at=now,
            last_activity=now,
        )
        self.store.put(context)
        logger.info(f"🆕 Session {context.session_id} created for citizen {citizen_id}")
        return context

    def get_context(self, session_id: str) -> ConversationContext:
        """
        Return the live context for a session.
        An idle-expired context is retired and replaced by a fresh one bound
        to the same citizen; raises SessionNotFoundError for unknown ids.
        """
        context = self.store.get(session_id)
        if context is None:
            raise SessionNotFoundError(session_id)

        if self._is_expired(context):
            context.state = SessionState.EXPIRED
            self.store.discard(session_id)
            logger.info(
                f"⏱️ Session {session_id} expired after "
                f"{context.idle_seconds(self._clock()):.0f}s idle; starting fresh context"
            )
            renewed = self.create_session(context.citizen_id, context.language, session_id=session_id)
            renewed.renewed_from_expired = True
            return renewed

        return context

    def touch(self, session_id: str) -> ConversationContext:
        """Mark citizen activity on the session (start of a turn)."""
        context = self.get_context(session_id)
        context.last_activity = max(context.last_activity, self._clock())
        return context

    def _is_expired(self, context: ConversationContext) -> bool:
        if context.state == SessionState.EXPIRED:
            return True
        return context.idle_seconds(self._clock()) > self.settings.session_timeout_seconds

    # ──────────────────────────────────────────────────────────────
    # Turns
    # ──────────────────────────────────────────────────────────────

    def append_turn(self, session_id: str, turn: Turn) -> ConversationContext:
        """Append a turn, evicting the oldest when the ring is full."""
        context = self.get_context(session_id)
        context.turns.append(turn)

        if turn.surfaced_opportunities:
            self._push_referenced(context, turn.surfaced_opportunities)

        context.last_activity = max(context.last_activity, self._clock())
        return context

    def _push_referenced(self, context: ConversationContext, opportunity_ids: list[str]) -> None:
        fresh = list(dict.fromkeys(opportunity_ids))
        context.referenced_opportunities = fresh + [
            oid for oid in context.referenced_opportunities if oid not in fresh
        ]

    def mark_referenced(self, session_id: str, opportunity_id: str) -> None:
        """Move an opportunity to the head of the referenced list."""
        context = self.get_context(session_id)
        self._push_referenced(context, [opportunity_id])

    # ──────────────────────────────────────────────────────────────
    # Reference resolution
    # ──────────────────────────────────────────────────────────────

    @staticmethod
    def find_reference_phrase(text: str) -> str | None:
        """Pick the first recognised reference phrase out of an utterance."""
        if not text:
            return None
        ordinal = _ORDINAL_RE.search(text)
        if ordinal:
            return _normalize_phrase(ordinal.group(0))
        head = _HEAD_RE.search(text)
        if head:
            return _normalize_phrase(head.group(0))
        return None

    def resolve_reference(self, session_id: str, phrase: str) -> str | None:
        """
        Map a reference phrase to an opportunity id, or None.

        Ordinals index (1-based) into the most recent surfaced list;
        anaphora and detail requests take the most recently referenced
        opportunity. Never guesses: out-of-range or empty → None.
        """
        context = self.get_context(session_id)
        normalized = _normalize_phrase(phrase or "")
        if not normalized:
            return None

        ordinal = _ORDINAL_RE.fullmatch(normalized)
        if ordinal:
            index = ORDINALS[ordinal.group(1).lower()]
            surfaced = self._latest_surfaced(context)
            if 1 <= index <= len(surfaced):
                return surfaced[index - 1]
            logger.debug(f"🔎 Ordinal {index} out of range ({len(surfaced)} surfaced) in {session_id}")
            return None

        if normalized in ANAPHORIC_PHRASES or normalized in DETAIL_PHRASES:
            if context.referenced_opportunities:
                return context.referenced_opportunities[0]
            return None

        return None

    @staticmethod
    def _latest_surfaced(context: ConversationContext) -> list[str]:
        for turn in reversed(context.turns):
            if turn.surfaced_opportunities:
                return list(turn.surfaced_opportunities)
        return []

    # ──────────────────────────────────────────────────────────────
    # Topic & counters
    # ──────────────────────────────────────────────────────────────

    def detect_topic_change(self, session_id: str, topic: str) -> bool:
        """
        Record the topic of the current turn. Returns True when it differs
        from the previous topic, in which case references and the
        clarification counter are reset.
        """
        context = self.get_context(session_id)
        previous = context.current_topic
        context.current_topic = topic
        if previous is None or previous == topic:
            return False

        context.referenced_opportunities.clear()
        context.clarification_count = 0
        logger.info(f"🔀 Topic change in {session_id}: {previous} → {topic}")
        return True

    def record_clarification(self, session_id: str) -> int:
        context = self.get_context(session_id)
        context.clarification_count += 1
        return context.clarification_count

    def record_failure(self, session_id: str) -> int:
        """
        Count a turn whose intent could not be resolved. Raises
        RepeatedFailureError once the escalation threshold is reached; the
        counter stays incremented.
        """
        context = self.get_context(session_id)
        context.failure_count += 1
        if context.failure_count >= self.settings.escalate_after_failures:
            logger.warning(
                f"🆘 Session {session_id}: {context.failure_count} consecutive unresolved intents"
            )
            raise RepeatedFailureError(context.failure_count)
        return context.failure_count

    def record_resolved_intent(self, session_id: str) -> None:
        """The turn's intent was understood; the consecutive-failure run ends."""
        context = self.get_context(session_id)
        context.failure_count = 0

    def record_success(self, session_id: str) -> None:
        context = self.get_context(session_id)
        context.clarification_count = 0
        context.failure_count = 0

    def should_simplify(self, context: ConversationContext) -> bool:
        return context.clarification_count >= self.settings.simplify_after_clarifications

    def should_escalate(self, context: ConversationContext) -> bool:
        return context.failure_count >= self.settings.escalate_after_failures
