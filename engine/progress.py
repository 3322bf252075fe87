# engine/progress.py — Assessment progress tracking & scale analytics.
"""Progress and scale analytics over resolved sections + responses.

Both functions are pure: they never mutate their inputs and return
plain dataclasses with ``to_dict()`` for JSON output.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from engine.responses import AssessmentResponse, index_responses
from schemas.domain import SectionWithQuestions
from schemas.taxonomy import (
    DEFAULT_SCALE_CONFIGURATION,
    PROGRESS_MILESTONES,
    SCALE_IMPROVEMENT_CEILING,
)

# ── Overall rating bands for the average scale score ──────────────
SCALE_RATINGS: tuple[tuple[str, float], ...] = (
    ("Excellent", 4.5),
    ("Good",      3.5),
    ("Fair",      2.5),
    ("Poor",      1.5),
    ("Critical",  0.0),
)


@dataclass(frozen=True)
class Milestone:
    milestone_id: str
    title: str
    threshold: int
    achieved: bool

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.milestone_id, "title": self.title,
                "threshold": self.threshold, "achieved": self.achieved}


@dataclass(frozen=True)
class CategoryProgress:
    category: str
    total_questions: int
    completed_questions: int
    points_earned: int
    total_points: int
    blockers: int

    @property
    def percentage(self) -> float:
        if not self.total_questions:
            return 0.0
        return round(self.completed_questions / self.total_questions * 100, 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "totalQuestions": self.total_questions,
            "completedQuestions": self.completed_questions,
            "pointsEarned": self.points_earned,
            "totalPoints": self.total_points,
            "blockers": self.blockers,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class ProgressReport:
    total_questions: int
    completed_questions: int
    percentage: float
    milestones: tuple[Milestone, ...]
    categories: tuple[CategoryProgress, ...]

    @property
    def achieved_milestones(self) -> tuple[str, ...]:
        return tuple(m.milestone_id for m in self.milestones if m.achieved)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalQuestions": self.total_questions,
            "completedQuestions": self.completed_questions,
            "percentage": self.percentage,
            "milestones": [m.to_dict() for m in self.milestones],
            "categoryProgress": [c.to_dict() for c in self.categories],
        }


def compute_progress(
    sections: Iterable[SectionWithQuestions],
    responses: Mapping[str, AssessmentResponse] | Iterable[AssessmentResponse] | None,
) -> ProgressReport:
    """Completion by question count, milestones reached, per-category totals.

    Points are earned only for passing answers; completion counts any
    answered question.
    """
    answers = index_responses(responses)

    totals: dict[str, list[int]] = defaultdict(lambda: [0, 0, 0, 0, 0])
    total = completed = 0
    for s in sections:
        for q in s.questions:
            resp = answers.get(q.question_id)
            answered = resp is not None and resp.answers(q)
            row = totals[q.category]
            row[0] += 1
            row[3] += q.points
            if q.is_blocker:
                row[4] += 1
            total += 1
            if answered:
                completed += 1
                row[1] += 1
                if resp.passes(q):
                    row[2] += q.points

    percentage = round(completed / total * 100, 1) if total else 0.0
    milestones = tuple(
        Milestone(mid, title, threshold, achieved=percentage >= threshold)
        for mid, title, threshold in PROGRESS_MILESTONES
    )
    categories = tuple(
        CategoryProgress(cat, *values)
        for cat, values in sorted(totals.items())
    )
    return ProgressReport(
        total_questions=total,
        completed_questions=completed,
        percentage=percentage,
        milestones=milestones,
        categories=categories,
    )


# ══════════════════════════════════════════════════════════════════
# Scale analytics
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ScaleAnalytics:
    total_questions: int
    completed_questions: int
    total_score: int
    max_possible_score: int
    average_score: float
    distribution: tuple[tuple[int, int], ...]
    improvement_areas: tuple[str, ...]
    overall_rating: str

    @property
    def percentage(self) -> float:
        if not self.max_possible_score:
            return 0.0
        return round(self.total_score / self.max_possible_score * 100, 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalQuestions": self.total_questions,
            "completedQuestions": self.completed_questions,
            "totalScore": self.total_score,
            "maxPossibleScore": self.max_possible_score,
            "averageScore": self.average_score,
            "percentage": self.percentage,
            "scoreDistribution": {str(k): v for k, v in self.distribution},
            "improvementAreas": list(self.improvement_areas),
            "overallRating": self.overall_rating,
        }


def scale_rating(average: float) -> str:
    for name, floor in SCALE_RATINGS:
        if average >= floor:
            return name
    return SCALE_RATINGS[-1][0]


def scale_analytics(
    sections: Iterable[SectionWithQuestions],
    responses: Mapping[str, AssessmentResponse] | Iterable[AssessmentResponse] | None,
) -> ScaleAnalytics:
    """Aggregate ``scale_1_5`` answers: average, distribution, improvement areas.

    Each answer is read against its own question's scale; the distribution
    always carries the default 1..5 buckets plus any wider catalog range.
    """
    answers = index_responses(responses)

    lo, hi = DEFAULT_SCALE_CONFIGURATION["min"], DEFAULT_SCALE_CONFIGURATION["max"]
    distribution = {v: 0 for v in range(lo, hi + 1)}
    improvement: list[str] = []
    scale_total = 0
    max_possible = 0
    values: list[int] = []
    for s in sections:
        for q in s.questions:
            if q.question_type != "scale_1_5":
                continue
            scale_total += 1
            for bucket in range(q.scale["min"], q.scale["max"] + 1):
                distribution.setdefault(bucket, 0)
            resp = answers.get(q.question_id)
            value = resp.scale_value(q) if resp is not None else None
            if value is None:
                continue
            values.append(value)
            max_possible += q.scale["max"]
            distribution[value] += 1
            if value <= SCALE_IMPROVEMENT_CEILING:
                improvement.append(q.question_id)

    average = round(sum(values) / len(values), 2) if values else 0.0
    return ScaleAnalytics(
        total_questions=scale_total,
        completed_questions=len(values),
        total_score=sum(values),
        max_possible_score=max_possible,
        average_score=average,
        distribution=tuple(sorted(distribution.items())),
        improvement_areas=tuple(improvement),
        overall_rating=scale_rating(average) if values else SCALE_RATINGS[-1][0],
    )
