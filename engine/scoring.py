# engine/scoring.py
"""Deterministic complexity & point scoring — constants imported from taxonomy.

Two axes that are never mixed:

  * **complexity** — therapy overlay + AI model type + deployment scenario
    points, describing how demanding the configuration is;
  * **points** — the sum of ``points`` over the questions the resolver
    selected, describing how much there is to answer.

Unknown optional references (model types, deployment scenarios) are
logged and recorded in ``skipped_references``; they never raise.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable

from catalog_packs.loader import CatalogPack
from engine.errors import UnknownCatalogReferenceError
from schemas.domain import AssessmentConfiguration
from schemas.taxonomy import COMPLEXITY_BADGES, MINUTES_PER_QUESTION, Question

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreSummary:
    therapy_score: int
    model_score: int
    deployment_score: int
    total_complexity: int
    total_points: int
    total_sections: int
    total_questions: int
    skipped_references: tuple[UnknownCatalogReferenceError, ...] = field(default=(), compare=False)

    @property
    def estimated_time_minutes(self) -> int:
        return estimated_time_minutes(self.total_questions)

    @property
    def estimated_time(self) -> str:
        return format_estimated_time(self.estimated_time_minutes)

    @property
    def complexity_badge(self) -> str:
        return complexity_badge(self.total_complexity)

    def complexity_dict(self) -> dict[str, Any]:
        return {
            "therapyScore": self.therapy_score,
            "modelScore": self.model_score,
            "deploymentScore": self.deployment_score,
            "totalComplexity": self.total_complexity,
            "badge": self.complexity_badge,
        }


# ── Time estimate ─────────────────────────────────────────────────

def estimated_time_minutes(question_count: int) -> int:
    """ceil(question_count × MINUTES_PER_QUESTION)."""
    if question_count <= 0:
        return 0
    return math.ceil(question_count * MINUTES_PER_QUESTION)


def format_estimated_time(minutes: int) -> str:
    """Render minutes as ``"Xh Ym"`` (or ``"Ym"`` below one hour)."""
    hours, mins = divmod(max(minutes, 0), 60)
    if hours:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def complexity_badge(total_complexity: int) -> str:
    """Advisory tier for a complexity total.  Never gates anything."""
    for name, floor in COMPLEXITY_BADGES:
        if total_complexity >= floor:
            return name
    return COMPLEXITY_BADGES[-1][0]


# ── Per-axis scores ───────────────────────────────────────────────

def _as_ids(ids: str | Iterable[str] | None) -> list[str]:
    if ids is None:
        return []
    if isinstance(ids, str):
        return [ids] if ids else []
    return sorted(i for i in ids if i)


def therapy_score(
    catalog: CatalogPack,
    area_ids: str | Iterable[str] | None,
    skipped: list[UnknownCatalogReferenceError] | None = None,
) -> int:
    """Sum ``overlay_points`` across every referenced therapeutic area."""
    total = 0
    for aid in _as_ids(area_ids):
        area = catalog.get_therapeutic_area(aid)
        if area is None:
            _skip(skipped, "therapeutic area", aid)
            continue
        total += area.overlay_points
    return total


def model_score(
    catalog: CatalogPack,
    model_type_ids: Iterable[str],
    skipped: list[UnknownCatalogReferenceError] | None = None,
) -> int:
    total = 0
    for mid in _as_ids(model_type_ids):
        model = catalog.get_ai_model_type(mid)
        if model is None:
            _skip(skipped, "AI model type", mid)
            continue
        total += model.complexity_points
    return total


def deployment_score(
    catalog: CatalogPack,
    scenario_ids: Iterable[str],
    skipped: list[UnknownCatalogReferenceError] | None = None,
) -> int:
    total = 0
    for did in _as_ids(scenario_ids):
        scenario = catalog.get_deployment_scenario(did)
        if scenario is None:
            _skip(skipped, "deployment scenario", did)
            continue
        total += scenario.complexity_points
    return total


def _skip(
    skipped: list[UnknownCatalogReferenceError] | None,
    kind: str,
    reference_id: str,
) -> None:
    _log.warning("Skipping unknown %s %r in complexity score", kind, reference_id)
    if skipped is not None:
        skipped.append(UnknownCatalogReferenceError(kind, reference_id))


# ── Summary ───────────────────────────────────────────────────────

def compute_scores(
    catalog: CatalogPack,
    config: AssessmentConfiguration,
    eligible_questions: Iterable[Question],
    *,
    section_count: int,
) -> ScoreSummary:
    """Complexity scores for *config* plus point totals over *eligible_questions*.

    ``eligible_questions`` must be the resolver's output; the point total
    is never computed over the full catalog.
    """
    skipped: list[UnknownCatalogReferenceError] = []
    t_score = therapy_score(catalog, config.therapeutic_area_id, skipped)
    m_score = model_score(catalog, config.ai_model_type_ids, skipped)
    d_score = deployment_score(catalog, config.deployment_scenario_ids, skipped)

    questions = list(eligible_questions)
    return ScoreSummary(
        therapy_score=t_score,
        model_score=m_score,
        deployment_score=d_score,
        total_complexity=t_score + m_score + d_score,
        total_points=sum(q.points for q in questions),
        total_sections=section_count,
        total_questions=len(questions),
        skipped_references=tuple(skipped),
    )
