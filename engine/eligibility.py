# engine/eligibility.py — Persona-driven section & question selection.
"""Eligibility resolver.

Given a catalog snapshot and an ``AssessmentConfiguration``, decide which
sections the active persona must complete and which questions inside
each section apply.

Rules
~~~~~
1. Admin personas receive every section and every question.  Priority is
   taken from an explicit mapping row when one exists, else
   ``ADMIN_DEFAULT_PRIORITY``; every section is required.
2. Non-admin personas receive the sections mapped to them.  With a
   sub-persona: that sub-persona's rows plus persona-wide rows, the
   sub-persona row winning on conflict.  Without one: every row of the
   persona, duplicates collapsed to the highest priority with
   ``is_required`` OR-ed.
3. A question is eligible when
     - ``persona_relevant`` is empty or names the active sub-persona, and
     - each ``*_specific`` flag it carries is matched: its tags
       (``category`` ∪ ``tags``) intersect the keys of the selected
       therapeutic area / model types / deployment scenarios.
4. Sections left with no eligible questions are dropped unless they are
   critical blockers (kept with zero questions so the gap stays visible).
5. Order: ``priority_score`` desc, then ``section_number`` asc.  Questions
   keep catalog order.

Deterministic: identical catalog + configuration → identical output.
"""
from __future__ import annotations

import logging
from typing import Iterable

from catalog_packs.loader import CatalogPack
from engine.errors import (
    EmptyConfigurationError,
    UnknownCatalogReferenceError,
    UnknownPersonaError,
    UnknownSubPersonaError,
)
from schemas.domain import AssessmentConfiguration, SectionWithQuestions
from schemas.taxonomy import (
    ADMIN_DEFAULT_PRIORITY,
    Persona,
    PersonaSectionMapping,
    Question,
)

_log = logging.getLogger(__name__)


# ── Question filter ───────────────────────────────────────────────

def is_question_eligible(
    question: Question,
    *,
    sub_persona_ids: frozenset[str],
    area_keys: frozenset[str],
    model_keys: frozenset[str],
    scenario_keys: frozenset[str],
) -> bool:
    """Apply the persona-relevance and overlay intersection rules to one question.

    ``sub_persona_ids`` holds the active sub-persona, or every sub-persona
    of the persona when none was chosen.
    """
    if question.persona_relevant and not (question.persona_relevant & sub_persona_ids):
        return False
    if question.therapy_specific and not (question.match_keys & area_keys):
        return False
    if question.ai_model_type_specific and not (question.match_keys & model_keys):
        return False
    if question.deployment_scenario_specific and not (question.match_keys & scenario_keys):
        return False
    return True


# ── Mapping collapse ──────────────────────────────────────────────

def _collapse_rows(
    rows: Iterable[PersonaSectionMapping],
    sub_persona_id: str | None,
) -> dict[str, tuple[int, bool, str]]:
    """section_id → (priority, is_required, responsibility_type)."""
    chosen: dict[str, PersonaSectionMapping] = {}
    merged: dict[str, tuple[int, bool, str]] = {}

    for row in rows:
        sid = row.section_id
        if sub_persona_id is not None:
            # Sub-persona row beats persona-wide row for the same section.
            prev = chosen.get(sid)
            if prev is None or (prev.sub_persona_id is None and row.sub_persona_id is not None):
                chosen[sid] = row
            continue

        prev_val = merged.get(sid)
        if prev_val is None:
            merged[sid] = (row.priority_score, row.is_required, row.responsibility_type)
            continue
        prio, required, resp = prev_val
        if row.priority_score > prio:
            prio, resp = row.priority_score, row.responsibility_type
        merged[sid] = (prio, required or row.is_required, resp)

    if sub_persona_id is not None:
        merged = {
            sid: (r.priority_score, r.is_required, r.responsibility_type)
            for sid, r in chosen.items()
        }
    return merged


# ── Overlay keys ──────────────────────────────────────────────────

def _overlay_keys(catalog: CatalogPack, config: AssessmentConfiguration) -> tuple[
    frozenset[str], frozenset[str], frozenset[str]
]:
    area = (catalog.get_therapeutic_area(config.therapeutic_area_id)
            if config.therapeutic_area_id else None)
    area_keys = area.requirement_keys if area else frozenset()

    model_keys: set[str] = set()
    for mid in sorted(config.ai_model_type_ids):
        model = catalog.get_ai_model_type(mid)
        if model is not None:
            model_keys |= model.requirement_keys

    scenario_keys: set[str] = set()
    for did in sorted(config.deployment_scenario_ids):
        scenario = catalog.get_deployment_scenario(did)
        if scenario is not None:
            scenario_keys |= scenario.requirement_keys

    return area_keys, frozenset(model_keys), frozenset(scenario_keys)


# ── Validation of required identifiers ────────────────────────────

def _require_persona(catalog: CatalogPack, config: AssessmentConfiguration) -> Persona:
    persona = catalog.get_persona(config.persona_id)
    if persona is None:
        raise UnknownPersonaError(config.persona_id)
    if config.sub_persona_id is not None:
        sub = catalog.get_sub_persona(config.sub_persona_id)
        if sub is None or sub.persona_id != persona.persona_id:
            raise UnknownSubPersonaError(config.sub_persona_id, persona.persona_id)
    return persona


def _order(resolved: list[SectionWithQuestions]) -> tuple[SectionWithQuestions, ...]:
    return tuple(sorted(
        resolved,
        key=lambda s: (-s.priority_score, s.section.section_number),
    ))


# ── Public entry point ────────────────────────────────────────────

def resolve_sections(
    catalog: CatalogPack,
    config: AssessmentConfiguration,
) -> tuple[SectionWithQuestions, ...]:
    """Return the ordered sections (with eligible questions) for *config*.

    Raises ``UnknownPersonaError``, ``UnknownSubPersonaError``,
    ``EmptyConfigurationError`` or ``UnknownCatalogReferenceError``.
    """
    persona = _require_persona(catalog, config)
    rows = catalog.list_sections_for_persona(persona.persona_id, config.sub_persona_id) or ()

    # ── Admin bypass ──────────────────────────────────────────────
    if persona.is_admin:
        if config.therapeutic_area_id and catalog.get_therapeutic_area(config.therapeutic_area_id) is None:
            _log.warning("Admin configuration references unknown therapeutic area %r; ignored",
                         config.therapeutic_area_id)
        explicit = _collapse_rows(rows, config.sub_persona_id)
        resolved = []
        for section in catalog.sections:
            prio, _required, resp = explicit.get(
                section.section_id, (ADMIN_DEFAULT_PRIORITY, True, "owner"),
            )
            resolved.append(SectionWithQuestions(
                section=section,
                questions=catalog.get_questions_for_section(section.section_id) or (),
                priority_score=prio,
                is_required=True,
                responsibility_type=resp,
            ))
        _log.debug("Resolved %d sections for admin persona %s",
                   len(resolved), persona.persona_id)
        return _order(resolved)

    # ── Non-admin: required therapeutic area ──────────────────────
    if not config.therapeutic_area_id:
        raise EmptyConfigurationError("therapeutic area")
    if catalog.get_therapeutic_area(config.therapeutic_area_id) is None:
        raise UnknownCatalogReferenceError("therapeutic area", config.therapeutic_area_id)

    if config.sub_persona_id is not None:
        sub_ids = frozenset({config.sub_persona_id})
    else:
        sub_ids = frozenset(s.sub_persona_id for s in catalog.list_sub_personas(persona.persona_id))

    area_keys, model_keys, scenario_keys = _overlay_keys(catalog, config)
    candidates = _collapse_rows(rows, config.sub_persona_id)

    resolved = []
    dropped = 0
    for section in catalog.sections:
        if section.section_id not in candidates:
            continue
        prio, required, resp = candidates[section.section_id]
        questions = tuple(
            q for q in catalog.get_questions_for_section(section.section_id) or ()
            if is_question_eligible(
                q,
                sub_persona_ids=sub_ids,
                area_keys=area_keys,
                model_keys=model_keys,
                scenario_keys=scenario_keys,
            )
        )
        if not questions and not section.is_critical_blocker:
            dropped += 1
            continue
        resolved.append(SectionWithQuestions(
            section=section,
            questions=questions,
            priority_score=prio,
            is_required=required,
            responsibility_type=resp,
        ))

    _log.debug(
        "Resolved %d sections for %s/%s (%d candidates, %d dropped as empty)",
        len(resolved), persona.persona_id, config.sub_persona_id or "*",
        len(candidates), dropped,
    )
    return _order(resolved)
