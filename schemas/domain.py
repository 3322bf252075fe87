"""Core domain types — request-scoped contracts shared across the engine.

Catalog entities live in ``schemas.taxonomy``.  The types here are built
per request: the configuration a user submits, the resolved sections the
engine derives from it, and the JSON shapes that leave the engine.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypedDict

from schemas.taxonomy import Question, Section


# ── Assessment configuration — what the user selected ─────────────
@dataclass(frozen=True)
class AssessmentConfiguration:
    """Persona + overlays chosen before an assessment starts.

    ``therapeutic_area_id`` is required for non-admin personas; the
    multi-select overlays may be empty.
    """
    persona_id: str
    sub_persona_id: str | None = None
    therapeutic_area_id: str | None = None
    company_id: str | None = None
    ai_model_type_ids: frozenset[str] = frozenset()
    deployment_scenario_ids: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        # Accept any iterable for the multi-selects; store frozen + blank-free.
        object.__setattr__(self, "ai_model_type_ids",
                           frozenset(i for i in self.ai_model_type_ids if i))
        object.__setattr__(self, "deployment_scenario_ids",
                           frozenset(i for i in self.deployment_scenario_ids if i))

    def to_dict(self) -> dict[str, Any]:
        return {
            "personaId": self.persona_id,
            "subPersonaId": self.sub_persona_id,
            "therapeuticAreaId": self.therapeutic_area_id,
            "companyId": self.company_id,
            "aiModelTypes": sorted(self.ai_model_type_ids),
            "deploymentScenarios": sorted(self.deployment_scenario_ids),
        }


# ── Resolved section — output of the eligibility resolver ─────────
@dataclass(frozen=True)
class SectionWithQuestions:
    """A section the active persona must complete, with its eligible questions."""
    section: Section
    questions: tuple[Question, ...]
    priority_score: int
    is_required: bool
    responsibility_type: str = "owner"

    @property
    def section_id(self) -> str:
        return self.section.section_id

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def blocker_questions(self) -> tuple[Question, ...]:
        return tuple(q for q in self.questions if q.is_blocker)

    @property
    def blocker_count(self) -> int:
        return len(self.blocker_questions)

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)

    def to_dict(self) -> "SectionPayload":
        s = self.section
        return {
            "id": s.section_id,
            "sectionNumber": s.section_number,
            "title": s.title,
            "basePoints": s.base_points,
            "isCriticalBlocker": s.is_critical_blocker,
            "sectionType": s.section_type,
            "validator": s.validator,
            "priorityScore": self.priority_score,
            "isRequired": self.is_required,
            "responsibilityType": self.responsibility_type,
            "questionCount": self.question_count,
            "blockerCount": self.blocker_count,
            "totalPoints": self.total_points,
            "questions": [q.to_dict() for q in self.questions],
        }


# ── JSON shapes that leave the engine ─────────────────────────────
class SectionPayload(TypedDict):
    """One section in a preview payload."""
    id: str
    sectionNumber: int
    title: str
    basePoints: int
    isCriticalBlocker: bool
    sectionType: str
    validator: str
    priorityScore: int
    isRequired: bool
    responsibilityType: str
    questionCount: int
    blockerCount: int
    totalPoints: int
    questions: list[dict[str, Any]]


class ComplexityPayload(TypedDict):
    therapyScore: int
    modelScore: int
    deploymentScore: int
    totalComplexity: int
    badge: str


class PreviewPayload(TypedDict):
    """Shape emitted by ``AssessmentPreview.to_dict()``."""
    sections: list[SectionPayload]
    totalSections: int
    totalQuestions: int
    totalPoints: int
    criticalSections: int
    productionBlockers: int
    estimatedTime: str
    estimatedTimeMinutes: int
    complexity: ComplexityPayload
    skippedReferences: list[dict[str, str]]
