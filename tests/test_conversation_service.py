import asyncio

import pytest

from sahayak.errors import SessionNotFoundError
from sahayak.models.classification import IntentCategory
from sahayak.models.payload import PayloadKind
from sahayak.models.profile import HistoryAction, Language
from sahayak.services.conversation_service import ConversationService
from sahayak.services.providers.memory_provider import (
    InMemoryOpportunityProvider,
    KeywordIntentClassifier,
    load_opportunities,
)

from conftest import CATALOGUE, classified


ONBOARDING = {"age": 25, "location": "Pune", "employment_status": "employed", "skills": ["wiring"]}


async def _session(conversation, profile_store, citizen_id="citizen-1", **fields):
    await profile_store.create(citizen_id, {**ONBOARDING, **fields})
    context = await conversation.start_session(citizen_id)
    return context.session_id


@pytest.mark.asyncio
async def test_job_search_then_ordinal_follow_up(conversation, profile_store, tracker):
    sid = await _session(conversation, profile_store)

    results = await conversation.handle_turn(sid, "show me jobs", classified(IntentCategory.JOB))

    assert results.kind == PayloadKind.RESULTS
    assert results.surfaced_ids == ["job-electrician", "job-welder", "job-data-entry"]
    assert results.opportunities[0].reasons[0] == "matches required skill: wiring"

    details = await conversation.handle_turn(
        sid, "tell me more about the second one", classified(IntentCategory.CLARIFICATION)
    )

    assert details.kind == PayloadKind.DETAILS
    assert details.surfaced_ids == ["job-welder"]
    assert (await profile_store.get("citizen-1")).viewed == ["job-welder"]

    context = tracker.get_context(sid)
    assert len(context.turns) == 2
    assert context.referenced_opportunities[0] == "job-welder"

    again = await conversation.handle_turn(sid, "what about that one", classified(IntentCategory.CLARIFICATION))
    assert again.surfaced_ids == ["job-welder"]


@pytest.mark.asyncio
async def test_unresolved_reference_asks_for_clarification(conversation, profile_store, tracker):
    sid = await _session(conversation, profile_store)

    payload = await conversation.handle_turn(
        sid, "tell me more about the first one", classified(IntentCategory.CLARIFICATION)
    )

    assert payload.kind == PayloadKind.CLARIFICATION
    assert payload.clarification.reason == "reference_unresolved"
    assert payload.clarification.phrase == "the first one"
    context = tracker.get_context(sid)
    assert context.clarification_count == 1
    assert context.failure_count == 0


@pytest.mark.asyncio
async def test_three_ambiguous_turns_escalate(conversation, profile_store, tracker):
    sid = await _session(conversation, profile_store)
    ambiguous = classified(IntentCategory.AMBIGUOUS, confidence=0.4)

    first = await conversation.handle_turn(sid, "hmm", ambiguous)
    second = await conversation.handle_turn(sid, "umm", ambiguous)
    third = await conversation.handle_turn(sid, "err", ambiguous)
    fourth = await conversation.handle_turn(sid, "uh", ambiguous)

    assert first.kind == PayloadKind.CLARIFICATION and first.escalate is False
    assert second.escalate is False
    assert third.kind == PayloadKind.ESCALATION and third.escalate is True
    assert third.clarification.reason == "repeated_failure"
    assert fourth.escalate is True
    assert fourth.route == "escalation"
    assert tracker.get_context(sid).failure_count == 4


@pytest.mark.asyncio
async def test_understood_turn_breaks_the_failure_run(conversation, profile_store, tracker):
    sid = await _session(conversation, profile_store)
    ambiguous = classified(IntentCategory.AMBIGUOUS, confidence=0.4)

    await conversation.handle_turn(sid, "hmm", ambiguous)
    await conversation.handle_turn(sid, "umm", ambiguous)
    middle = await conversation.handle_turn(
        sid, "tell me more about the first one", classified(IntentCategory.CLARIFICATION)
    )
    after = await conversation.handle_turn(sid, "err", ambiguous)

    assert middle.clarification.reason == "reference_unresolved"
    assert after.kind == PayloadKind.CLARIFICATION
    assert after.escalate is False
    context = tracker.get_context(sid)
    assert context.failure_count == 1
    assert context.clarification_count == 4


@pytest.mark.asyncio
async def test_successful_turn_resets_failure_counter(conversation, profile_store, tracker):
    sid = await _session(conversation, profile_store)
    low = classified(IntentCategory.JOB, confidence=0.3)

    await conversation.handle_turn(sid, "hmm", low)
    await conversation.handle_turn(sid, "umm", low)
    await conversation.handle_turn(sid, "help", classified(IntentCategory.HELP))
    assert tracker.get_context(sid).failure_count == 0

    payload = await conversation.handle_turn(sid, "err", low)

    assert payload.escalate is False
    assert payload.clarification.reason == "low_confidence"
    assert tracker.get_context(sid).failure_count == 1


@pytest.mark.asyncio
async def test_citizen_without_profile_gets_onboarding(conversation, tracker):
    context = await conversation.start_session("newcomer")

    payload = await conversation.handle_turn(context.session_id, "jobs please", classified(IntentCategory.JOB))

    assert payload.kind == PayloadKind.ONBOARDING
    assert "age" in payload.help_topics
    assert len(tracker.get_context(context.session_id).turns) == 1


@pytest.mark.asyncio
async def test_expired_session_restarts_with_fresh_context(conversation, profile_store, tracker, clock):
    sid = await _session(conversation, profile_store)
    await conversation.handle_turn(sid, "show me jobs", classified(IntentCategory.JOB))

    clock.advance(121)
    payload = await conversation.handle_turn(sid, "that one", classified(IntentCategory.CLARIFICATION))

    assert payload.session_renewed is True
    assert payload.kind == PayloadKind.CLARIFICATION
    assert payload.clarification.reason == "reference_unresolved"
    context = tracker.get_context(sid)
    assert context.citizen_id == "citizen-1"
    assert len(context.turns) == 1


@pytest.mark.asyncio
async def test_save_twice_records_once(conversation, profile_store):
    sid = await _session(conversation, profile_store)
    await conversation.handle_turn(sid, "show me jobs", classified(IntentCategory.JOB))
    save = classified(IntentCategory.PROFILE_UPDATE, action=HistoryAction.SAVED)

    first = await conversation.handle_turn(sid, "save the first one", save)
    second = await conversation.handle_turn(sid, "save the first one", save)

    assert first.kind == PayloadKind.HISTORY
    assert first.history.opportunity_id == "job-electrician"
    assert first.history.already_recorded is False
    assert second.history.already_recorded is True
    assert (await profile_store.get("citizen-1")).saved == ["job-electrician"]


@pytest.mark.asyncio
async def test_ineligible_scheme_comes_with_alternatives(conversation, profile_store):
    sid = await _session(conversation, profile_store)

    payload = await conversation.handle_turn(
        sid, "am I eligible for the youth allowance",
        classified(IntentCategory.CLARIFICATION, opportunity_id="scheme-youth"),
    )

    assert payload.kind == PayloadKind.ELIGIBILITY
    assert payload.eligibility["eligible"] is False
    assert payload.eligibility["unmatched_criteria"] == ["employment_status"]
    assert [a.opportunity_id for a in payload.alternatives] == ["scheme-adult", "scheme-women-18"]


@pytest.mark.asyncio
async def test_vanished_opportunity_reports_no_results(conversation, profile_store):
    sid = await _session(conversation, profile_store)

    payload = await conversation.handle_turn(
        sid, "tell me more", classified(IntentCategory.CLARIFICATION, opportunity_id="ghost")
    )

    assert payload.kind == PayloadKind.NO_RESULTS


@pytest.mark.asyncio
async def test_profile_update_from_entities(conversation, profile_store):
    sid = await _session(conversation, profile_store)

    payload = await conversation.handle_turn(
        sid, "I moved to Mumbai and I can weld",
        classified(IntentCategory.PROFILE_UPDATE, location="Mumbai", skills=["welding"]),
    )

    assert payload.kind == PayloadKind.PROFILE_UPDATE
    assert payload.profile_update.updated_fields == ["location", "skills"]
    profile = await profile_store.get("citizen-1")
    assert profile.location == "Mumbai"
    assert profile.skills == ["wiring", "welding"]
    assert profile.age == 25


@pytest.mark.asyncio
async def test_invalid_profile_value_asks_for_correction(conversation, profile_store):
    sid = await _session(conversation, profile_store)

    payload = await conversation.handle_turn(sid, "I am 200", classified(IntentCategory.PROFILE_UPDATE, age=200))

    assert payload.kind == PayloadKind.VALIDATION_ERROR
    assert payload.validation.field == "age"
    assert (await profile_store.get("citizen-1")).age == 25


@pytest.mark.asyncio
async def test_rejected_update_leaves_every_field_unchanged(conversation, profile_store):
    sid = await _session(conversation, profile_store)
    before = await profile_store.get("citizen-1")

    payload = await conversation.handle_turn(
        sid, "I moved to Mumbai and I am 200", classified(IntentCategory.PROFILE_UPDATE, location="Mumbai", age=200)
    )

    assert payload.kind == PayloadKind.VALIDATION_ERROR
    assert payload.validation.field == "age"
    profile = await profile_store.get("citizen-1")
    assert profile.location == "Pune"
    assert profile.age == 25
    assert profile.field_timestamps == before.field_timestamps


@pytest.mark.asyncio
async def test_profile_update_without_fields_asks_for_clarification(conversation, profile_store):
    sid = await _session(conversation, profile_store)

    payload = await conversation.handle_turn(sid, "update my profile", classified(IntentCategory.PROFILE_UPDATE))

    assert payload.kind == PayloadKind.CLARIFICATION
    assert payload.clarification.reason == "no_profile_fields"


@pytest.mark.asyncio
async def test_topic_change_is_flagged(conversation, profile_store, tracker):
    sid = await _session(conversation, profile_store)

    jobs = await conversation.handle_turn(sid, "jobs", classified(IntentCategory.JOB))
    schemes = await conversation.handle_turn(sid, "schemes", classified(IntentCategory.SCHEME))

    assert jobs.topic_changed is False
    assert schemes.topic_changed is True
    context = tracker.get_context(sid)
    assert context.current_topic == "scheme"
    assert not set(context.referenced_opportunities) & set(jobs.surfaced_ids)


@pytest.mark.asyncio
async def test_hindi_speaker_gets_hindi_payload(conversation, profile_store):
    sid = await _session(conversation, profile_store, preferred_language="Hindi")

    payload = await conversation.handle_turn(sid, "naukri", classified(IntentCategory.JOB))

    assert payload.language == Language.HINDI
    assert payload.opportunities[0].language_fallback is True


class BrokenStore(InMemoryOpportunityProvider):
    async def search(self, category, criteria, limit=20):
        raise ConnectionError("store unreachable")


@pytest.mark.asyncio
async def test_store_failure_returns_unavailable_and_leaves_context(tracker, profile_store, settings):
    conversation = ConversationService(tracker, profile_store, BrokenStore(load_opportunities(CATALOGUE)), settings=settings)
    sid = await _session(conversation, profile_store)

    payload = await conversation.handle_turn(sid, "jobs", classified(IntentCategory.JOB))

    assert payload.kind == PayloadKind.UNAVAILABLE
    assert payload.unavailable == "memory-opportunities"
    context = tracker.get_context(sid)
    assert len(context.turns) == 0
    assert context.current_topic is None


class SlowClassifier(KeywordIntentClassifier):
    async def classify(self, text, language=Language.ENGLISH):
        await asyncio.sleep(1)
        return await super().classify(text, language)


@pytest.mark.asyncio
async def test_classifier_timeout_returns_unavailable(tracker, profile_store, opportunities, settings):
    conversation = ConversationService(
        tracker, profile_store, opportunities, classifier=SlowClassifier(), settings=settings
    )
    sid = await _session(conversation, profile_store)

    payload = await conversation.handle_turn(sid, "jobs")

    assert payload.kind == PayloadKind.UNAVAILABLE
    assert payload.unavailable == "keyword-classifier"
    assert len(tracker.get_context(sid).turns) == 0


@pytest.mark.asyncio
async def test_configured_classifier_is_used(tracker, profile_store, opportunities, settings):
    conversation = ConversationService(
        tracker, profile_store, opportunities, classifier=KeywordIntentClassifier(), settings=settings
    )
    sid = await _session(conversation, profile_store)

    payload = await conversation.handle_turn(sid, "any jobs near me?")

    assert payload.kind == PayloadKind.RESULTS
    assert payload.route == "job_search"


@pytest.mark.asyncio
async def test_turns_of_one_session_are_serialised(conversation, profile_store, tracker):
    sid = await _session(conversation, profile_store)

    await asyncio.gather(
        conversation.handle_turn(sid, "jobs", classified(IntentCategory.JOB)),
        conversation.handle_turn(sid, "schemes", classified(IntentCategory.SCHEME)),
        conversation.handle_turn(sid, "help", classified(IntentCategory.HELP)),
    )

    assert len(tracker.get_context(sid).turns) == 3


@pytest.mark.asyncio
async def test_turns_on_unknown_sessions_leave_no_state(conversation, session_store):
    for n in range(20):
        with pytest.raises(SessionNotFoundError):
            await conversation.handle_turn(f"ghost-{n}", "jobs", classified(IntentCategory.JOB))

    assert len(session_store) == 0
    assert session_store._locks == {}
