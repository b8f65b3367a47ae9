from datetime import date

import pytest

from sahayak.config import Settings
from sahayak.models.opportunity import IMMEDIATE_ASSISTANCE_TAG, Job, OpportunityCategory, Program, Scheme
from sahayak.models.profile import CitizenProfile, EmploymentStatus
from sahayak.models.results import SearchCriteria
from sahayak.services.matching_service import MatchingService, need_signals
from sahayak.services.providers.memory_provider import load_opportunities

from conftest import CATALOGUE


TODAY = date(2026, 1, 15)


@pytest.fixture
def matcher(settings):
    return MatchingService(settings)


def _profile(**fields) -> CitizenProfile:
    base = {"citizen_id": "citizen-1", "age": 25, "location": "Pune", "employment_status": EmploymentStatus.EMPLOYED}
    base.update(fields)
    return CitizenProfile(**base)


def test_urgent_tagged_opportunity_ranks_first_for_unemployed(matcher):
    tagged = Scheme(id="a-tagged", name="Relief", location="Delhi", tags=(IMMEDIATE_ASSISTANCE_TAG,))
    untagged = Scheme(id="b-untagged", name="Local Support", location="Pune")
    profile = _profile(employment_status=EmploymentStatus.UNEMPLOYED)

    results = matcher.search(OpportunityCategory.SCHEME, profile, SearchCriteria(), [untagged, tagged], today=TODAY)

    assert [r.opportunity_id for r in results] == ["a-tagged", "b-untagged"]
    assert results[0].score < results[1].score
    assert results[0].reasons[0] == "eligible and tagged as immediate assistance"


def test_tag_gives_no_boost_without_need(matcher):
    tagged = Scheme(id="a-tagged", name="Relief", location="Delhi", tags=(IMMEDIATE_ASSISTANCE_TAG,))
    untagged = Scheme(id="b-untagged", name="Local Support", location="Pune")

    results = matcher.search(OpportunityCategory.SCHEME, _profile(income=500000), SearchCriteria(), [tagged, untagged], today=TODAY)

    assert [r.opportunity_id for r in results] == ["b-untagged", "a-tagged"]


def test_income_never_signals_need_without_configured_threshold():
    profile = _profile(income=1000)

    assert need_signals(profile, None).urgent is False
    assert need_signals(profile, 100000).urgent is True

    matcher = MatchingService(Settings(_env_file=None, poverty_income_threshold=None))
    tagged = Scheme(id="a-tagged", name="Relief", location="Delhi", tags=(IMMEDIATE_ASSISTANCE_TAG,))
    untagged = Scheme(id="b-untagged", name="Local Support", location="Pune")
    results = matcher.search(OpportunityCategory.SCHEME, profile, SearchCriteria(), [tagged, untagged], today=TODAY)
    assert results[0].opportunity_id == "b-untagged"


def test_scholarship_breaks_tie_under_financial_need(matcher):
    plain = Program(id="a-plain", name="Course A", institution="ITI", location="Pune")
    funded = Program(id="b-funded", name="Course B", institution="ITI", location="Pune", scholarship_available=True)
    profile = _profile(income=50000)

    results = matcher.search(OpportunityCategory.PROGRAM, profile, SearchCriteria(), [plain, funded], today=TODAY)

    assert results[0].score == results[1].score
    assert [r.opportunity_id for r in results] == ["b-funded", "a-plain"]
    assert "scholarship available for financial need" in results[0].reasons


def test_nearer_deadline_then_id_break_remaining_ties(matcher):
    later = Program(id="a-later", name="Course", institution="ITI", location="Pune", deadline=date(2026, 6, 1))
    sooner = Program(id="b-sooner", name="Course", institution="ITI", location="Pune", deadline=date(2026, 2, 1))
    open_ended = Program(id="c-open", name="Course", institution="ITI", location="Pune")

    results = matcher.search(OpportunityCategory.PROGRAM, _profile(income=500000), SearchCriteria(), [open_ended, later, sooner], today=TODAY)

    assert [r.opportunity_id for r in results] == ["b-sooner", "a-later", "c-open"]


def test_eligible_schemes_rank_above_ineligible(matcher):
    ineligible = Scheme(id="a-ineligible", name="Senior", location="Pune", criteria={"age": {"min": 60}})
    eligible = Scheme(id="b-eligible", name="Anyone", location="Delhi", criteria={"age": {"min": 18}})

    results = matcher.search(OpportunityCategory.SCHEME, _profile(), SearchCriteria(), [ineligible, eligible], today=TODAY)

    assert [r.opportunity_id for r in results] == ["b-eligible", "a-ineligible"]
    assert results[0].eligibility.eligible is True
    assert results[1].reasons[0] == "not eligible: does not meet age"


def test_jobs_filtered_by_category_and_deadline(matcher):
    catalogue = load_opportunities(CATALOGUE)
    expired = Job(id="job-expired", name="Old Job", company="X", location="Pune", deadline=date(2025, 12, 31))

    results = matcher.search(
        OpportunityCategory.JOB, _profile(skills=["wiring"]), SearchCriteria(), [*catalogue, expired], today=TODAY
    )

    ids = [r.opportunity_id for r in results]
    assert "job-expired" not in ids
    assert all(r.opportunity.category == "job" for r in results)
    assert ids[0] == "job-electrician"
    assert results[0].reasons[0] == "matches required skill: wiring"
    assert results[0].eligibility is None


def test_every_result_carries_a_reason(matcher):
    catalogue = load_opportunities(CATALOGUE)

    for category in OpportunityCategory:
        for result in matcher.search(category, _profile(location="Chennai"), SearchCriteria(), catalogue, today=TODAY):
            assert result.reasons


def test_search_keywords_and_location_from_criteria(matcher):
    catalogue = load_opportunities(CATALOGUE)
    criteria = SearchCriteria(keywords=("typing",), location="Remote")

    results = matcher.search(OpportunityCategory.JOB, _profile(), criteria, catalogue, today=TODAY)

    assert results[0].opportunity_id == "job-data-entry"


def test_tag_filter_and_limit(matcher):
    catalogue = load_opportunities(CATALOGUE)

    assert matcher.search(OpportunityCategory.JOB, _profile(), SearchCriteria(tags=("night-shift",)), catalogue, today=TODAY) == []
    assert len(matcher.search(OpportunityCategory.JOB, _profile(), SearchCriteria(limit=2), catalogue, today=TODAY)) == 2


def test_ineligible_scheme_gets_alternative_sharing_a_matched_criterion(matcher):
    catalogue = load_opportunities(CATALOGUE)
    target = next(o for o in catalogue if o.id == "scheme-youth")
    profile = _profile(gender="male")
    eligibility = matcher.eligibility.check(target, profile)

    alternatives = matcher.suggest_alternatives(target, eligibility, catalogue, profile)

    assert eligibility.eligible is False
    assert eligibility.matched_criteria == ["age"]
    assert [a.opportunity_id for a in alternatives] == ["scheme-adult", "scheme-women-18"]
    assert alternatives[0].eligibility.eligible is True
    assert all("age" in a.reasons[0] for a in alternatives)


def test_no_alternatives_without_a_matched_criterion(matcher):
    catalogue = load_opportunities(CATALOGUE)
    target = next(o for o in catalogue if o.id == "scheme-senior")
    profile = _profile()
    eligibility = matcher.eligibility.check(target, profile)

    assert matcher.suggest_alternatives(target, eligibility, catalogue, profile) == []


@pytest.mark.asyncio
async def test_store_prefilter_keeps_keyword_and_location_misses(opportunities):
    criteria = SearchCriteria(keywords=("welding",), location="Mumbai")

    candidates = await opportunities.search(OpportunityCategory.JOB, criteria)
    tagged = await opportunities.search(OpportunityCategory.JOB, SearchCriteria(tags=("immediate-assistance",)))

    assert [c.id for c in candidates] == ["job-electrician", "job-welder", "job-data-entry"]
    assert tagged == []
