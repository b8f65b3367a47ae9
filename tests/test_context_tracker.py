import pytest

from sahayak.errors import RepeatedFailureError, SessionNotFoundError
from sahayak.models.conversation import SessionState, Turn
from sahayak.models.profile import Language


def _turn(n: int, surfaced=None) -> Turn:
    return Turn(citizen_input=f"utterance {n}", intent="job", surfaced_opportunities=surfaced or [])


def test_new_session_is_empty_and_active(tracker):
    context = tracker.create_session("citizen-1", Language.HINDI)

    assert context.state == SessionState.ACTIVE
    assert context.language == Language.HINDI
    assert len(context.turns) == 0
    assert context.referenced_opportunities == []
    assert context.clarification_count == 0 and context.failure_count == 0


def test_unknown_session_raises(tracker):
    with pytest.raises(SessionNotFoundError):
        tracker.get_context("missing")


def test_sixth_turn_evicts_oldest(tracker):
    context = tracker.create_session("citizen-1")
    for n in range(1, 6):
        tracker.append_turn(context.session_id, _turn(n))
    assert len(tracker.get_context(context.session_id).turns) == 5

    tracker.append_turn(context.session_id, _turn(6))

    turns = tracker.get_context(context.session_id).turns
    assert len(turns) == 5
    assert [t.citizen_input for t in turns] == [f"utterance {n}" for n in range(2, 7)]


def test_reference_resolution_against_surfaced_list(tracker):
    context = tracker.create_session("citizen-1")
    tracker.append_turn(context.session_id, _turn(1, ["X", "Y", "Z"]))

    assert tracker.get_context(context.session_id).referenced_opportunities[0] == "X"
    assert tracker.resolve_reference(context.session_id, "the first one") == "X"
    assert tracker.resolve_reference(context.session_id, "the third one") == "Z"
    assert tracker.resolve_reference(context.session_id, "that one") == "X"
    assert tracker.resolve_reference(context.session_id, "tell me more") == "X"
    assert tracker.resolve_reference(context.session_id, "the fourth one") is None


def test_anaphora_follows_most_recent_reference(tracker):
    context = tracker.create_session("citizen-1")
    tracker.append_turn(context.session_id, _turn(1, ["X", "Y", "Z"]))
    tracker.mark_referenced(context.session_id, "Y")

    assert tracker.resolve_reference(context.session_id, "it") == "Y"
    # ordinals still index the last presented list
    assert tracker.resolve_reference(context.session_id, "2nd") == "Y"
    assert tracker.resolve_reference(context.session_id, "the first one") == "X"


def test_reference_without_history_is_unresolved(tracker):
    context = tracker.create_session("citizen-1")

    assert tracker.resolve_reference(context.session_id, "that one") is None
    assert tracker.resolve_reference(context.session_id, "the first one") is None
    assert tracker.resolve_reference(context.session_id, "something else") is None


@pytest.mark.parametrize(
    "text, phrase",
    [
        ("Tell me more about the second one", "the second one"),
        ("tell me more", "tell me more"),
        ("I want to save that one!", "that one"),
        ("Is it still open?", "it"),
        ("show me jobs in Pune", None),
        ("Is first aid training free?", None),
        ("Tell me about the second scheme", "the second scheme"),
        ("I will take the third.", "the third"),
    ],
)
def test_find_reference_phrase(tracker, text, phrase):
    assert tracker.find_reference_phrase(text) == phrase


def test_context_idle_past_timeout_is_renewed_for_same_citizen(tracker, clock):
    context = tracker.create_session("citizen-1", Language.HINDI)
    tracker.append_turn(context.session_id, _turn(1, ["X"]))
    tracker.record_clarification(context.session_id)

    clock.advance(121)
    renewed = tracker.get_context(context.session_id)

    assert context.state == SessionState.EXPIRED
    assert renewed is not context
    assert renewed.session_id == context.session_id
    assert renewed.citizen_id == "citizen-1"
    assert renewed.language == Language.HINDI
    assert renewed.renewed_from_expired is True
    assert len(renewed.turns) == 0
    assert renewed.referenced_opportunities == []
    assert renewed.clarification_count == 0


def test_context_at_timeout_boundary_is_still_active(tracker, clock):
    context = tracker.create_session("citizen-1")

    clock.advance(120)

    assert tracker.get_context(context.session_id) is context


def test_touch_extends_activity(tracker, clock):
    context = tracker.create_session("citizen-1")
    clock.advance(100)
    tracker.touch(context.session_id)
    clock.advance(100)

    assert tracker.get_context(context.session_id) is context


def test_topic_change_clears_references_and_clarifications(tracker):
    context = tracker.create_session("citizen-1")

    assert tracker.detect_topic_change(context.session_id, "job") is False
    tracker.append_turn(context.session_id, _turn(1, ["X"]))
    tracker.record_clarification(context.session_id)
    assert tracker.detect_topic_change(context.session_id, "job") is False
    assert context.referenced_opportunities == ["X"]

    assert tracker.detect_topic_change(context.session_id, "scheme") is True
    assert context.referenced_opportunities == []
    assert context.clarification_count == 0
    assert context.current_topic == "scheme"


def test_failure_counter_raises_at_escalation_threshold(tracker):
    context = tracker.create_session("citizen-1")

    assert tracker.record_failure(context.session_id) == 1
    assert tracker.record_failure(context.session_id) == 2
    with pytest.raises(RepeatedFailureError):
        tracker.record_failure(context.session_id)

    assert context.failure_count == 3
    assert tracker.should_escalate(context)


def test_success_resets_counters(tracker):
    context = tracker.create_session("citizen-1")
    tracker.record_failure(context.session_id)
    tracker.record_clarification(context.session_id)

    tracker.record_success(context.session_id)

    assert context.failure_count == 0
    assert context.clarification_count == 0


def test_simplify_after_repeated_clarifications(tracker):
    context = tracker.create_session("citizen-1")
    for _ in range(3):
        tracker.record_clarification(context.session_id)

    assert tracker.should_simplify(context)


def test_unknown_session_gets_no_lock(session_store):
    for n in range(100):
        with pytest.raises(SessionNotFoundError):
            session_store.lock(f"ghost-{n}")

    assert session_store._locks == {}


@pytest.mark.asyncio
async def test_lock_survives_discard_while_held(tracker, session_store):
    context = tracker.create_session("citizen-1")

    async with session_store.lock(context.session_id):
        session_store.discard(context.session_id)
        assert context.session_id in session_store._locks

    session_store.discard(context.session_id)
    assert context.session_id not in session_store._locks


def test_long_idle_sessions_are_pruned_on_allocation(tracker, session_store, clock):
    stale = tracker.create_session("citizen-1")
    session_store.lock(stale.session_id)
    clock.advance(100)
    recent = tracker.create_session("citizen-2")

    clock.advance(3600 - 99)
    tracker.create_session("citizen-3")

    assert stale.session_id not in session_store
    assert recent.session_id in session_store
    with pytest.raises(SessionNotFoundError):
        session_store.lock(stale.session_id)
    with pytest.raises(SessionNotFoundError):
        tracker.get_context(stale.session_id)


def test_ordinal_needs_a_reference_shape(tracker):
    context = tracker.create_session("citizen-1")
    tracker.append_turn(context.session_id, _turn(1, ["X", "Y", "Z"]))

    assert tracker.resolve_reference(context.session_id, "the second scheme") == "Y"
    assert tracker.resolve_reference(context.session_id, "the third") == "Z"
    assert tracker.resolve_reference(context.session_id, "first aid") is None
