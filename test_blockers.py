"""Critical-blocker analysis & readiness verdict tests.

Run:  pytest test_blockers.py -v

Matrix:
  all blockers passing + completion >= 85 %     → ready
  one blocker failing  + completion >= 85 %     → not ready, critical_blockers
  all blockers passing + completion <  85 %     → not ready, completion
  both failing                                  → both codes reported
"""
from __future__ import annotations

import pytest

from engine.blockers import analyze_blockers, evaluate_readiness, readiness_tier
from engine.responses import AssessmentResponse
from schemas.domain import SectionWithQuestions
from schemas.taxonomy import Question, Section


# ── Helpers ───────────────────────────────────────────────────────

def _q(qid: str, points: int = 10, blocker: bool = False, qtype: str = "boolean") -> Question:
    return Question(question_id=qid, section_id="x", text=qid, question_type=qtype,
                    points=points, is_blocker=blocker, category="General")


def _s(sid: str, number: int, critical: bool, *questions: Question) -> SectionWithQuestions:
    section = Section(section_id=sid, section_number=number, title=sid, base_points=50,
                      is_critical_blocker=critical, section_type="safety")
    return SectionWithQuestions(section=section, questions=tuple(questions),
                                priority_score=2, is_required=True)


@pytest.fixture
def sections():
    return (
        _s("crit", 1, True, _q("b1", blocker=True), _q("b2", blocker=True, qtype="scale_1_5"),
           _q("c1")),
        _s("soft", 2, False, _q("b3", blocker=True), _q("c2"), _q("c3")),
        _s("empty", 3, True),
    )


def _answer_all(sections, **overrides):
    out = {}
    for s in sections:
        for q in s.questions:
            value = 5 if q.question_type == "scale_1_5" else True
            out[q.question_id] = AssessmentResponse(q.question_id, overrides.get(q.question_id, value))
    return out


# ── Blocker summary ───────────────────────────────────────────────

class TestAnalyzeBlockers:
    def test_counts(self, sections):
        summary = analyze_blockers(sections)
        assert summary.critical_sections == 2
        assert summary.production_blockers == 3

    def test_empty_critical_section_visible(self, sections):
        summary = analyze_blockers(sections)
        assert summary.empty_critical_sections == ("empty",)
        assert summary.to_dict()["emptyCriticalSections"] == ["empty"]

    def test_per_section_ids(self, sections):
        per = {s.section_id: s for s in analyze_blockers(sections).per_section}
        assert per["crit"].blocker_question_ids == ("b1", "b2")
        assert per["soft"].blocker_count == 1


# ── Readiness conjunction ─────────────────────────────────────────

class TestReadinessPass:
    def test_everything_answered_and_passing(self, sections):
        verdict = evaluate_readiness(sections, _answer_all(sections))
        assert verdict.production_ready is True
        assert verdict.failures == ()
        assert verdict.tier == "production_ready"
        assert verdict.completion_ratio == 1.0

    def test_non_critical_blocker_does_not_gate(self, sections):
        verdict = evaluate_readiness(sections, _answer_all(sections, b3=False))
        assert verdict.production_ready is True

    def test_responses_accept_iterable(self, sections):
        verdict = evaluate_readiness(sections, list(_answer_all(sections).values()))
        assert verdict.production_ready is True


class TestReadinessFail:
    def test_failing_blocker_in_critical_section(self, sections):
        verdict = evaluate_readiness(sections, _answer_all(sections, b1=False))
        assert verdict.production_ready is False
        assert [f.code for f in verdict.failures] == ["critical_blockers"]
        assert verdict.unresolved_blockers == ("b1",)
        # Completion is 100 %, but the tier is capped without a ready verdict.
        assert verdict.tier == "conditional"

    def test_low_scale_blocker_is_not_passing(self, sections):
        verdict = evaluate_readiness(sections, _answer_all(sections, b2=3))
        assert verdict.unresolved_blockers == ("b2",)

    def test_completion_below_threshold(self, sections):
        answers = _answer_all(sections)
        del answers["c2"]
        del answers["c3"]
        verdict = evaluate_readiness(sections, answers)
        assert [f.code for f in verdict.failures] == ["completion"]
        assert verdict.answered_points == 40
        assert verdict.total_points == 60

    def test_both_conditions_reported(self, sections):
        verdict = evaluate_readiness(sections, {})
        assert {f.code for f in verdict.failures} == {"critical_blockers", "completion"}
        assert verdict.tier == "not_ready"

    def test_in_progress_answer_does_not_count(self, sections):
        answers = _answer_all(sections)
        answers["b1"] = AssessmentResponse("b1", True, completion_status="in_progress")
        verdict = evaluate_readiness(sections, answers)
        assert "b1" in verdict.unresolved_blockers

    @pytest.mark.parametrize("value", ["false", "true", "False", 1, 0, None])
    def test_boolean_blocker_needs_real_true(self, sections, value):
        verdict = evaluate_readiness(sections, _answer_all(sections, b1=value))
        assert verdict.production_ready is False
        assert verdict.unresolved_blockers == ("b1",)

    @pytest.mark.parametrize("value", ["1", "5", 99, 0, 6, True, 4.5, "excellent"])
    def test_scale_blocker_needs_int_in_range(self, sections, value):
        verdict = evaluate_readiness(sections, _answer_all(sections, b2=value))
        assert verdict.production_ready is False
        assert verdict.unresolved_blockers == ("b2",)

    @pytest.mark.parametrize("value", ["", "   ", True, 5])
    def test_free_text_blocker_needs_text(self, value):
        crit = _s("crit", 1, True, _q("t1", blocker=True, qtype="free_text"))
        verdict = evaluate_readiness((crit,), {"t1": AssessmentResponse("t1", value)})
        assert verdict.unresolved_blockers == ("t1",)
        assert verdict.production_ready is False

    def test_mistyped_answer_earns_no_completion_points(self, sections):
        verdict = evaluate_readiness(sections, _answer_all(sections, c1="yes"))
        assert verdict.answered_points == 50

    def test_scale_range_comes_from_question(self):
        wide = Question(question_id="w", section_id="x", text="w", question_type="scale_1_5",
                        points=10, is_blocker=True, category="General",
                        scale_configuration=(("max", 10), ("min", 1)))
        crit = _s("crit", 1, True, wide)
        assert evaluate_readiness((crit,), {"w": AssessmentResponse("w", 8)}).production_ready
        narrow = _s("crit", 1, True, _q("n", blocker=True, qtype="scale_1_5"))
        verdict = evaluate_readiness((narrow,), {"n": AssessmentResponse("n", 8)})
        assert verdict.unresolved_blockers == ("n",)

    def test_no_questions_is_not_ready(self):
        verdict = evaluate_readiness((_s("empty", 1, True),), {})
        assert verdict.completion_ratio == 0.0
        assert verdict.production_ready is False


@pytest.mark.parametrize("pct,ready,tier", [
    (95, True, "production_ready"),
    (95, False, "conditional"),
    (85, False, "conditional"),
    (72, False, "pre_production"),
    (60, False, "development_complete"),
    (10, False, "not_ready"),
])
def test_readiness_tier_bands(pct, ready, tier):
    assert readiness_tier(pct, ready) == tier
