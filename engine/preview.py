# engine/preview.py — Assessment preview composition.
"""Compose an ``AssessmentPreview`` from a configuration.

Pure orchestration: resolver → calculator + blocker analyzer.  The
catalog snapshot is taken once per call, so a concurrent
``CatalogStore.reload()`` never mixes two catalog versions into one
preview.

Usage
~~~~~
    from engine.preview import compose_preview
    preview = compose_preview(AssessmentConfiguration(
        persona_id="data-science",
        sub_persona_id="data-head",
        therapeutic_area_id="oncology",
    ))
    preview.to_dict()
"""
from __future__ import annotations

from dataclasses import dataclass

from catalog_packs.loader import CatalogPack
from catalog_packs.store import default_store
from engine.blockers import BlockerSummary, analyze_blockers
from engine.eligibility import resolve_sections
from engine.scoring import ScoreSummary, compute_scores
from schemas.domain import AssessmentConfiguration, PreviewPayload, SectionWithQuestions


@dataclass(frozen=True)
class AssessmentPreview:
    """Derived view of an assessment before it starts.  Never persisted."""
    configuration: AssessmentConfiguration
    sections: tuple[SectionWithQuestions, ...]
    scores: ScoreSummary
    blockers: BlockerSummary
    catalog_version: str = ""

    @property
    def total_sections(self) -> int:
        return self.scores.total_sections

    @property
    def total_questions(self) -> int:
        return self.scores.total_questions

    @property
    def total_points(self) -> int:
        return self.scores.total_points

    @property
    def critical_sections(self) -> int:
        return self.blockers.critical_sections

    @property
    def production_blockers(self) -> int:
        return self.blockers.production_blockers

    @property
    def estimated_time_minutes(self) -> int:
        return self.scores.estimated_time_minutes

    @property
    def estimated_time(self) -> str:
        return self.scores.estimated_time

    def to_dict(self) -> PreviewPayload:
        return {
            "sections": [s.to_dict() for s in self.sections],
            "totalSections": self.total_sections,
            "totalQuestions": self.total_questions,
            "totalPoints": self.total_points,
            "criticalSections": self.critical_sections,
            "productionBlockers": self.production_blockers,
            "estimatedTime": self.estimated_time,
            "estimatedTimeMinutes": self.estimated_time_minutes,
            "complexity": self.scores.complexity_dict(),
            "skippedReferences": [e.to_dict() for e in self.scores.skipped_references],
        }


def compose_preview(
    configuration: AssessmentConfiguration,
    catalog: CatalogPack | None = None,
) -> AssessmentPreview:
    """Resolve, score and analyse *configuration* against one catalog snapshot.

    Raises an ``EngineError`` subclass for invalid required identifiers.
    """
    pack = catalog if catalog is not None else default_store().snapshot()

    sections = resolve_sections(pack, configuration)
    scores = compute_scores(
        pack,
        configuration,
        (q for s in sections for q in s.questions),
        section_count=len(sections),
    )
    return AssessmentPreview(
        configuration=configuration,
        sections=sections,
        scores=scores,
        blockers=analyze_blockers(sections),
        catalog_version=pack.version_tag,
    )
