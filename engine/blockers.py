# engine/blockers.py — Critical-blocker analysis & production-readiness verdict.
"""Critical-blocker analyzer.

Production readiness is a conjunction of two conditions, each reported
on its own when it fails:

  ``critical_blockers`` — every blocker question inside every critical
                          section is answered *and* passing.
  ``completion``        — answered points / total points
                          >= ``PRODUCTION_COMPLETION_THRESHOLD``.

A ready verdict is never produced while either condition fails, and a
failing verdict always lists the conditions that failed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Mapping

from engine.responses import AssessmentResponse, index_responses
from schemas.domain import SectionWithQuestions
from schemas.taxonomy import PRODUCTION_COMPLETION_THRESHOLD, READINESS_TIERS

_log = logging.getLogger(__name__)

ReadinessCondition = Literal["critical_blockers", "completion"]


# ══════════════════════════════════════════════════════════════════
# Blocker summary
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SectionBlockers:
    section_id: str
    section_number: int
    is_critical_blocker: bool
    blocker_question_ids: tuple[str, ...]
    question_count: int

    @property
    def blocker_count(self) -> int:
        return len(self.blocker_question_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sectionId": self.section_id,
            "sectionNumber": self.section_number,
            "isCriticalBlocker": self.is_critical_blocker,
            "blockerCount": self.blocker_count,
            "blockerQuestionIds": list(self.blocker_question_ids),
            "questionCount": self.question_count,
        }


@dataclass(frozen=True)
class BlockerSummary:
    critical_sections: int
    production_blockers: int
    per_section: tuple[SectionBlockers, ...]

    @property
    def empty_critical_sections(self) -> tuple[str, ...]:
        """Critical sections retained with no eligible questions."""
        return tuple(s.section_id for s in self.per_section
                     if s.is_critical_blocker and s.question_count == 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "criticalSections": self.critical_sections,
            "productionBlockers": self.production_blockers,
            "emptyCriticalSections": list(self.empty_critical_sections),
            "perSection": [s.to_dict() for s in self.per_section],
        }


def analyze_blockers(sections: Iterable[SectionWithQuestions]) -> BlockerSummary:
    """Count critical sections and blocker questions across resolved sections."""
    per_section = tuple(
        SectionBlockers(
            section_id=s.section_id,
            section_number=s.section.section_number,
            is_critical_blocker=s.section.is_critical_blocker,
            blocker_question_ids=tuple(q.question_id for q in s.blocker_questions),
            question_count=s.question_count,
        )
        for s in sections
    )
    return BlockerSummary(
        critical_sections=sum(1 for s in per_section if s.is_critical_blocker),
        production_blockers=sum(s.blocker_count for s in per_section),
        per_section=per_section,
    )


# ══════════════════════════════════════════════════════════════════
# Readiness verdict
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ReadinessFailure:
    code: ReadinessCondition
    detail: str
    question_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": self.detail,
                "questionIds": list(self.question_ids)}


@dataclass(frozen=True)
class ReadinessVerdict:
    production_ready: bool
    failures: tuple[ReadinessFailure, ...]
    completion_ratio: float
    answered_points: int
    total_points: int
    unresolved_blockers: tuple[str, ...]
    tier: str

    @property
    def completion_percentage(self) -> float:
        return round(self.completion_ratio * 100, 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "productionReady": self.production_ready,
            "tier": self.tier,
            "completionPercentage": self.completion_percentage,
            "answeredPoints": self.answered_points,
            "totalPoints": self.total_points,
            "unresolvedBlockers": list(self.unresolved_blockers),
            "failures": [f.to_dict() for f in self.failures],
        }


def readiness_tier(completion_percentage: float, production_ready: bool) -> str:
    """Band a completion percentage; capped at ``conditional`` unless ready."""
    tier = READINESS_TIERS[-1][0]
    for name, floor in READINESS_TIERS:
        if completion_percentage >= floor:
            tier = name
            break
    if tier == READINESS_TIERS[0][0] and not production_ready:
        return READINESS_TIERS[1][0]
    return tier


def evaluate_readiness(
    sections: Iterable[SectionWithQuestions],
    responses: Mapping[str, AssessmentResponse] | Iterable[AssessmentResponse] | None,
) -> ReadinessVerdict:
    """Derive the production-readiness verdict from resolved sections + answers."""
    answers = index_responses(responses)
    sections = list(sections)

    unresolved: list[str] = []
    total_points = 0
    answered_points = 0
    for s in sections:
        for q in s.questions:
            total_points += q.points
            resp = answers.get(q.question_id)
            if resp is not None and resp.answers(q):
                answered_points += q.points
            if s.section.is_critical_blocker and q.is_blocker:
                if resp is None or not resp.passes(q):
                    unresolved.append(q.question_id)

    ratio = answered_points / total_points if total_points else 0.0

    failures: list[ReadinessFailure] = []
    if unresolved:
        failures.append(ReadinessFailure(
            code="critical_blockers",
            detail=f"{len(unresolved)} blocker question(s) in critical sections "
                   f"are unanswered or not passing",
            question_ids=tuple(unresolved),
        ))
    if ratio < PRODUCTION_COMPLETION_THRESHOLD:
        failures.append(ReadinessFailure(
            code="completion",
            detail=f"Completion {ratio:.1%} is below the required "
                   f"{PRODUCTION_COMPLETION_THRESHOLD:.0%}",
        ))

    ready = not failures
    verdict = ReadinessVerdict(
        production_ready=ready,
        failures=tuple(failures),
        completion_ratio=ratio,
        answered_points=answered_points,
        total_points=total_points,
        unresolved_blockers=tuple(unresolved),
        tier=readiness_tier(ratio * 100, ready),
    )
    _log.debug("Readiness: ready=%s tier=%s completion=%.3f unresolved=%d",
               ready, verdict.tier, ratio, len(unresolved))
    return verdict
