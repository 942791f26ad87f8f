"""Tests for TrialMatcher end-to-end matching over a fake source."""

from __future__ import annotations

from ctgov_search.application.matching.matcher import TrialMatcher, build_condition_query
from ctgov_search.application.matching.pagination import PageAccumulator
from ctgov_search.domain.entities.study import StudyQuery, StudyRecord


def _matcher(source, no_sleep, page_size: int = 100) -> TrialMatcher:
    return TrialMatcher(PageAccumulator(source, sleep=no_sleep), page_size=page_size)


class TestConditionQuery:
    def test_single_word_unquoted(self):
        assert build_condition_query(["Asthma"]) == "Asthma"

    def test_multi_word_quoted_and_or_joined(self):
        assert build_condition_query(["Type 2 Diabetes", "Hypertension"]) == '"Type 2 Diabetes" OR Hypertension'

    def test_embedded_quotes_escaped(self):
        assert build_condition_query(['Crohn "severe" disease']) == '"Crohn \\"severe\\" disease"'


class TestBuildQuery:
    def test_recruiting_filter(self, make_profile, fake_source_factory, no_sleep):
        matcher = _matcher(fake_source_factory([[]]), no_sleep)
        query = matcher.build_query(make_profile())
        assert query.condition == '"Type 2 Diabetes"'
        assert query.status_filter == ("RECRUITING", "NOT_YET_RECRUITING")
        assert query.page_size == 100

    def test_not_recruiting_only_keeps_base_filter(self, make_profile, fake_source_factory, no_sleep):
        matcher = _matcher(fake_source_factory([[]]), no_sleep)
        base = StudyQuery(sponsor="NIH", status_filter=("COMPLETED",))
        query = matcher.build_query(make_profile(recruiting_only=False), base)
        assert query.status_filter == ("COMPLETED",)
        assert query.sponsor == "NIH"


class TestMatchEligibleTrials:
    async def test_ranks_and_filters(self, make_study, make_profile, fake_source_factory, no_sleep):
        studies = [
            make_study(nct_id="NCT00000001", conditions=["Type 2 Diabetes"]),
            make_study(nct_id="NCT00000002", conditions=["Cardiovascular Disease"]),
            make_study(nct_id="NCT00000003", conditions=["Diabetes"], minimum_age="50 Years"),
            make_study(
                nct_id="NCT00000004",
                conditions=["Diabetes Mellitus, Type 2"],
                locations=[
                    {"facility": "A", "city": "Boston", "state": "Massachusetts", "country": "United States"},
                    {"facility": "B", "city": "Austin", "state": "Texas", "country": "United States"},
                ],
            ),
            make_study(nct_id="NCT00000005", conditions=["Diabetes"]),
        ]
        source = fake_source_factory([studies])

        result = await _matcher(source, no_sleep).match_eligible_trials(make_profile())

        ids = [m.nct_id for m in result.eligible_studies]
        # 0002: zero relevance; 0003: too young
        assert ids == ["NCT00000004", "NCT00000001", "NCT00000005"]
        assert result.total_matches == 3
        assert result.evaluated == 5
        assert result.total_available is None
        assert result.eligible_studies[0].match_score == 100
        assert result.eligible_studies[-1].match_score == 70

    async def test_reasons(self, make_study, make_profile, fake_source_factory, no_sleep):
        source = fake_source_factory([[make_study(conditions=["Type 2 Diabetes"])]])
        result = await _matcher(source, no_sleep).match_eligible_trials(make_profile())

        reasons = result.eligible_studies[0].match_reasons
        assert reasons[0] == "Age within range (18 Years - 65 Years)"
        assert reasons[-1] == "Condition relevance: 100% (Type 2 Diabetes)"
        assert "1 location(s) in United States" in reasons

    async def test_truncated_to_max_results(self, make_study, make_profile, fake_source_factory, no_sleep):
        studies = [make_study(nct_id=f"NCT{i:08d}") for i in range(8)]
        source = fake_source_factory([studies])

        result = await _matcher(source, no_sleep).match_eligible_trials(make_profile(max_results=3))

        assert len(result.eligible_studies) == 3
        assert result.total_matches == 8

    async def test_only_first_slice_evaluated(self, make_study, make_profile, fake_source_factory, no_sleep):
        first = [make_study(nct_id=f"NCT{i:08d}") for i in range(4)]
        second = [make_study(nct_id=f"NCT{i:08d}") for i in range(4, 8)]
        source = fake_source_factory([first, second], total_count=250)

        result = await _matcher(source, no_sleep, page_size=4).match_eligible_trials(make_profile())

        assert len(source.calls) == 1
        assert result.evaluated == 4
        assert result.total_available == 250
        assert result.to_dict()["total_available"] == 250

    async def test_empty_catalog(self, make_profile, fake_source_factory, no_sleep):
        source = fake_source_factory([[]], total_count=0)
        result = await _matcher(source, no_sleep).match_eligible_trials(make_profile())
        assert result.eligible_studies == []
        assert result.total_matches == 0

    async def test_search_criteria(self, make_profile, fake_source_factory, no_sleep):
        source = fake_source_factory([[]], total_count=0)
        result = await _matcher(source, no_sleep).match_eligible_trials(make_profile())
        assert result.to_dict()["search_criteria"] == {
            "conditions": ["Type 2 Diabetes"],
            "location": "Boston",
            "patient": "45 years old, Female",
        }

    def test_score_study_excludes_zero_relevance(self, make_study, make_profile, fake_source_factory, no_sleep):
        matcher = _matcher(fake_source_factory([[]]), no_sleep)
        record = StudyRecord(make_study(conditions=["Cardiovascular Disease"]))
        assert matcher.score_study(record, make_profile()) is None

    def test_score_study_display_fields(self, make_study, make_profile, fake_source_factory, no_sleep):
        matcher = _matcher(fake_source_factory([[]]), no_sleep)
        study = make_study(
            phases=["PHASE3"],
            enrollment=120,
            contacts=[{"name": "Study Desk", "phone": "555-0199"}],
        )
        match = matcher.score_study(StudyRecord(study), make_profile())
        assert match.details.phases == ("PHASE3",)
        assert match.details.enrollment_count == 120
        assert match.contact.name == "Study Desk"
        assert match.locations[0].city == "Boston"
