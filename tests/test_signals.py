import math
import pytest
from datetime import timedelta

from pipeline_health.config import FRAMEWORK_FIELDS, FRAMEWORK_WEIGHTS
from pipeline_health.signals import (
    calculate_framework_coverage, calculate_recency, calculate_task_progress,
    extract_readiness_flags, is_field_known, latest_notes_by_framework,
)

from factories import (
    NOW, full_content, make_action, make_note, make_transcript, unknown_content,
)


class TestFieldKnown:
    @pytest.mark.parametrize("value", ["Jane Doe (CFO)", "  $2M ARR target  "])
    def test_known_values(self, value):
        assert is_field_known(value) is True

    @pytest.mark.parametrize("value", [
        "", "   ", None, 42, ["CFO"],
        "Unknown (not mentioned)",
        "Not mentioned in the call",
        "Budget: Unknown (not mentioned) yet",
    ])
    def test_unknown_values(self, value):
        assert is_field_known(value) is False

    def test_markers_are_case_sensitive(self):
        assert is_field_known("not mentioned") is True


class TestFrameworkCoverage:
    def test_no_notes_is_zero(self):
        assert calculate_framework_coverage([]) == 0.0

    def test_single_complete_framework_is_full_coverage(self):
        notes = [make_note("BANT", full_content("BANT"))]
        assert calculate_framework_coverage(notes) == pytest.approx(1.0)

    def test_all_complete_frameworks_match_single_complete_framework(self):
        notes = [make_note(fw, full_content(fw)) for fw in FRAMEWORK_WEIGHTS]
        single = [make_note("MEDDPICC", full_content("MEDDPICC"))]
        assert calculate_framework_coverage(notes) == pytest.approx(1.0)
        assert calculate_framework_coverage(notes) == pytest.approx(calculate_framework_coverage(single))

    def test_partial_framework(self):
        fields = FRAMEWORK_FIELDS["MEDDPICC"]
        content = unknown_content("MEDDPICC")
        for field in fields[:4]:
            content[field] = "Captured"
        notes = [make_note("MEDDPICC", content)]
        assert calculate_framework_coverage(notes) == pytest.approx(0.5)

    def test_missing_fields_count_as_unknown(self):
        notes = [make_note("BANT", {"Budget": "$400k", "Need": "Pipeline visibility"})]
        assert calculate_framework_coverage(notes) == pytest.approx(0.5)

    def test_weights_renormalise_over_present_frameworks(self):
        bant = unknown_content("BANT")
        bant["Budget"] = "$400k"
        bant["Authority"] = "CRO"
        notes = [
            make_note("MEDDPICC", full_content("MEDDPICC")),
            make_note("BANT", bant),
        ]
        expected = (0.4 * 1.0 + 0.15 * 0.5) / (0.4 + 0.15)
        assert calculate_framework_coverage(notes) == pytest.approx(expected)

    def test_unweighted_framework_is_ignored(self):
        notes = [make_note("LicenseDemandPlan", {"Seats": "250"})]
        assert calculate_framework_coverage(notes) == 0.0

    def test_latest_note_wins(self):
        older = make_note("VEF", full_content("VEF"), created_at=NOW - timedelta(days=20))
        newer = make_note("VEF", unknown_content("VEF"), created_at=NOW - timedelta(days=2))
        assert calculate_framework_coverage([older, newer]) == 0.0
        assert calculate_framework_coverage([newer, older]) == 0.0

    def test_updated_at_counts_as_latest(self):
        edited = make_note("VEF", full_content("VEF"), created_at=NOW - timedelta(days=20),
                           updated_at=NOW - timedelta(hours=1))
        newer = make_note("VEF", unknown_content("VEF"), created_at=NOW - timedelta(days=2))
        latest = latest_notes_by_framework([edited, newer])
        assert latest["VEF"] is edited
        assert calculate_framework_coverage([edited, newer]) == pytest.approx(1.0)


class TestRecency:
    def test_no_transcripts_is_zero(self):
        assert calculate_recency([], NOW) == 0.0

    def test_today_is_exactly_one(self):
        assert calculate_recency([make_transcript(days_ago=0)], NOW) == 1.0

    def test_thirty_days_is_one_over_e(self):
        assert calculate_recency([make_transcript(days_ago=30)], NOW) == pytest.approx(math.exp(-1), abs=1e-3)
        assert calculate_recency([make_transcript(days_ago=30)], NOW) == pytest.approx(0.3679, abs=1e-3)

    def test_monotonically_decreasing(self):
        values = [calculate_recency([make_transcript(days_ago=d)], NOW) for d in (0, 0.5, 1, 7, 30, 90)]
        assert values == sorted(values, reverse=True)
        assert len(set(values)) == len(values)

    def test_uses_most_recent_transcript(self):
        transcripts = [make_transcript(days_ago=60), make_transcript(days_ago=3), make_transcript(days_ago=45)]
        assert calculate_recency(transcripts, NOW) == pytest.approx(math.exp(-3 / 30))

    def test_future_transcript_counts_as_today(self):
        assert calculate_recency([make_transcript(days_ago=-2)], NOW) == 1.0


class TestTaskProgress:
    def test_no_items_is_zero(self):
        assert calculate_task_progress([], NOW) == 0.0

    def test_old_completed_item_is_ignored(self):
        assert calculate_task_progress([make_action("Completed", days_ago=40)], NOW) == 0.0

    def test_completed_ratio_of_recent_items(self):
        items = [
            make_action("Completed", days_ago=1),
            make_action("Open", days_ago=2),
            make_action("In Progress", days_ago=5),
            make_action("Completed", days_ago=10),
        ]
        assert calculate_task_progress(items, NOW) == pytest.approx(0.5)

    def test_stale_backlog_does_not_drag_score(self):
        items = [
            make_action("Completed", days_ago=3),
            make_action("Overdue", days_ago=45),
            make_action("Open", days_ago=60),
        ]
        assert calculate_task_progress(items, NOW) == pytest.approx(1.0)

    def test_window_boundary_is_inclusive(self):
        assert calculate_task_progress([make_action("Completed", days_ago=30)], NOW) == pytest.approx(1.0)


class TestReadinessFlags:
    def test_no_meddpicc_note_means_all_false(self):
        flags = extract_readiness_flags([make_note("BANT", full_content("BANT"))])
        assert not any(flags.model_dump().values())

    def test_complete_meddpicc_sets_all_flags(self):
        flags = extract_readiness_flags([make_note("MEDDPICC", full_content("MEDDPICC"))])
        assert all(flags.model_dump().values())

    def test_flags_follow_individual_fields(self):
        content = unknown_content("MEDDPICC")
        content["Economic Buyer"] = "Dana Ruiz, CFO"
        content["Identified Pain"] = "Reps spend 30% of time on manual research"
        content["Paper Process"] = "Not mentioned"
        flags = extract_readiness_flags([make_note("MEDDPICC", content)])

        assert flags.economic_buyer is True
        assert flags.pain_explicit is True
        assert flags.champion is False
        assert flags.decision_process is False
        assert flags.decision_criteria is False
        assert flags.paper_process is False
