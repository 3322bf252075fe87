"""Eligibility resolver tests.

Run:  pytest test_eligibility.py -v

Two layers:
  * a small synthetic catalog built through ``validate_and_build_catalog``
    that pins each selection rule in isolation;
  * the shipped ``complianceiq/v1.0`` pack for the end-to-end scenarios.
"""
from __future__ import annotations

import json

import pytest

from catalog_packs.loader import CatalogPack, load_pack
from engine.catalog_validator import validate_and_build_catalog
from engine.eligibility import is_question_eligible, resolve_sections
from engine.errors import (
    EmptyConfigurationError,
    EngineError,
    UnknownCatalogReferenceError,
    UnknownPersonaError,
    UnknownSubPersonaError,
)
from schemas.domain import AssessmentConfiguration


# ── Helpers ───────────────────────────────────────────────────────

def _section(sid: str, number: int, critical: bool = True) -> dict:
    return {"id": sid, "sectionNumber": number, "title": sid.title(), "basePoints": 50,
            "isCriticalBlocker": critical, "sectionType": "regulatory"}


def _question(qid: str, sid: str, **extra) -> dict:
    raw = {"id": qid, "sectionId": sid, "text": f"Question {qid}?", "type": "boolean",
           "points": 5, "category": "General"}
    raw.update(extra)
    return raw


def _mapping(persona: str, sub: str | None, sid: str, prio: int = 2, required: bool = True) -> dict:
    return {"personaId": persona, "subPersonaId": sub, "sectionId": sid,
            "priorityScore": prio, "isRequired": required}


def _make_catalog(**overrides) -> CatalogPack:
    raw = {
        "persona": [
            {"id": "admin", "name": "Admin", "isAdmin": True},
            {"id": "ds", "name": "Data Science"},
            {"id": "exec", "name": "Executive"},
        ],
        "sub_persona": [
            {"id": "admin-full", "personaId": "admin", "name": "Full", "expertiseLevel": "expert"},
            {"id": "head", "personaId": "ds", "name": "Head", "expertiseLevel": "expert"},
            {"id": "eng", "personaId": "ds", "name": "Engineer", "expertiseLevel": "intermediate"},
            {"id": "ceo", "personaId": "exec", "name": "CEO", "expertiseLevel": "expert"},
        ],
        "therapeutic_area": [
            {"id": "oncology", "name": "Oncology", "complexity": "Critical", "overlayPoints": 20,
             "requirements": ["Biomarkers"]},
            {"id": "cardiology", "name": "Cardiology", "complexity": "High", "overlayPoints": 18,
             "requirements": ["ECG interpretation"]},
        ],
        "ai_model_type": [
            {"id": "generative-ai", "name": "GenAI", "complexity": "High", "complexityPoints": 15,
             "requirements": ["Hallucination detection"]},
            {"id": "agentic-ai", "name": "Agentic", "complexity": "Critical", "complexityPoints": 20},
        ],
        "deployment_scenario": [
            {"id": "clinical-trials", "name": "Trials", "complexity": "High", "complexityPoints": 12},
        ],
        "section": [
            _section("s1", 1),
            _section("s2", 2),
            _section("s3", 3, critical=False),
            _section("s4", 4),
            _section("s5", 5, critical=False),
        ],
        "question": [
            _question("q1", "s1", isBlocker=True),
            _question("q2", "s1", personaRelevant=["eng"]),
            _question("q3", "s2", therapySpecific=True, tags=["biomarkers"]),
            _question("q4", "s2", therapySpecific=True, tags=["cardiology"]),
            _question("q5", "s2", aiModelTypeSpecific=True, tags=["Hallucination Detection"]),
            _question("q6", "s3", deploymentScenarioSpecific=True, tags=["clinical-trials"]),
            _question("q7", "s4", therapySpecific=True, tags=["cardiology"]),
            _question("q8", "s5"),
        ],
        "mapping": [
            _mapping("ds", "head", "s1", prio=1),
            _mapping("ds", "head", "s2", prio=3),
            _mapping("ds", "head", "s3", prio=2),
            _mapping("ds", "head", "s4", prio=2),
            _mapping("ds", None, "s1", prio=3, required=False),
            _mapping("ds", None, "s5", prio=1, required=False),
            _mapping("ds", "eng", "s5", prio=3),
            _mapping("admin", "admin-full", "s3", prio=1),
        ],
    }
    raw.update(overrides)
    e = validate_and_build_catalog(raw)
    return CatalogPack(
        pack_id="test-pack", name="Test", version="0", description="",
        personas=e.personas, sub_personas=e.sub_personas,
        therapeutic_areas=e.therapeutic_areas, ai_model_types=e.ai_model_types,
        deployment_scenarios=e.deployment_scenarios, sections=e.sections,
        questions=e.questions, mappings=e.mappings,
    )


def _ids(sections) -> list[str]:
    return [s.section_id for s in sections]


def _question_ids(sections) -> dict[str, list[str]]:
    return {s.section_id: [q.question_id for q in s.questions] for s in sections}


@pytest.fixture
def catalog() -> CatalogPack:
    return _make_catalog()


@pytest.fixture(scope="module")
def shipped() -> CatalogPack:
    return load_pack("complianceiq", "v1.0")


# ── Required identifiers ──────────────────────────────────────────

class TestRequiredIdentifiers:
    def test_unknown_persona(self, catalog):
        with pytest.raises(UnknownPersonaError) as exc:
            resolve_sections(catalog, AssessmentConfiguration("nobody", therapeutic_area_id="oncology"))
        assert exc.value.persona_id == "nobody"

    def test_sub_persona_not_owned_by_persona(self, catalog):
        with pytest.raises(UnknownSubPersonaError):
            resolve_sections(catalog, AssessmentConfiguration(
                "ds", sub_persona_id="ceo", therapeutic_area_id="oncology"))

    def test_unknown_sub_persona(self, catalog):
        with pytest.raises(UnknownSubPersonaError):
            resolve_sections(catalog, AssessmentConfiguration(
                "ds", sub_persona_id="ghost", therapeutic_area_id="oncology"))

    def test_missing_therapeutic_area(self, catalog):
        with pytest.raises(EmptyConfigurationError):
            resolve_sections(catalog, AssessmentConfiguration("ds", sub_persona_id="head"))

    def test_unknown_therapeutic_area(self, catalog):
        with pytest.raises(UnknownCatalogReferenceError) as exc:
            resolve_sections(catalog, AssessmentConfiguration(
                "ds", sub_persona_id="head", therapeutic_area_id="dermatology"))
        assert exc.value.reference_id == "dermatology"

    def test_errors_share_engine_base(self):
        for cls in (UnknownPersonaError, UnknownSubPersonaError,
                    UnknownCatalogReferenceError, EmptyConfigurationError):
            assert issubclass(cls, EngineError)


# ── Selection rules ───────────────────────────────────────────────

class TestSelection:
    def test_sub_persona_row_wins_over_persona_wide(self, catalog):
        out = resolve_sections(catalog, AssessmentConfiguration(
            "ds", sub_persona_id="head", therapeutic_area_id="oncology"))
        s1 = next(s for s in out if s.section_id == "s1")
        assert s1.priority_score == 1
        assert s1.is_required is True

    def test_persona_wide_rows_apply_to_every_sub_persona(self, catalog):
        out = resolve_sections(catalog, AssessmentConfiguration(
            "ds", sub_persona_id="head", therapeutic_area_id="oncology"))
        assert "s5" in _ids(out)

    def test_no_sub_persona_collapses_to_max_priority(self, catalog):
        out = resolve_sections(catalog, AssessmentConfiguration("ds", therapeutic_area_id="oncology"))
        by_id = {s.section_id: s for s in out}
        assert by_id["s1"].priority_score == 3
        assert by_id["s1"].is_required is True
        assert by_id["s5"].priority_score == 3
        assert by_id["s5"].is_required is True

    def test_persona_relevant_filters_other_sub_personas(self, catalog):
        head = _question_ids(resolve_sections(catalog, AssessmentConfiguration(
            "ds", sub_persona_id="head", therapeutic_area_id="oncology")))
        assert head["s1"] == ["q1"]
        everyone = _question_ids(resolve_sections(catalog, AssessmentConfiguration(
            "ds", therapeutic_area_id="oncology")))
        assert everyone["s1"] == ["q1", "q2"]

    def test_therapy_intersection_is_case_insensitive(self, catalog):
        out = _question_ids(resolve_sections(catalog, AssessmentConfiguration(
            "ds", sub_persona_id="head", therapeutic_area_id="oncology")))
        assert "q3" in out["s2"]
        assert "q4" not in out["s2"]

    def test_model_type_specific_requires_selected_model(self, catalog):
        without = _question_ids(resolve_sections(catalog, AssessmentConfiguration(
            "ds", sub_persona_id="head", therapeutic_area_id="oncology")))
        assert "q5" not in without["s2"]
        with_genai = _question_ids(resolve_sections(catalog, AssessmentConfiguration(
            "ds", sub_persona_id="head", therapeutic_area_id="oncology",
            ai_model_type_ids=frozenset({"generative-ai"}))))
        assert "q5" in with_genai["s2"]

    def test_unknown_model_type_does_not_raise(self, catalog):
        out = resolve_sections(catalog, AssessmentConfiguration(
            "ds", sub_persona_id="head", therapeutic_area_id="oncology",
            ai_model_type_ids=frozenset({"quantum-ai"})))
        assert "s2" in _ids(out)

    def test_empty_non_critical_section_dropped(self, catalog):
        out = resolve_sections(catalog, AssessmentConfiguration(
            "ds", sub_persona_id="head", therapeutic_area_id="oncology"))
        assert "s3" not in _ids(out)

    def test_deployment_scenario_keeps_section(self, catalog):
        out = resolve_sections(catalog, AssessmentConfiguration(
            "ds", sub_persona_id="head", therapeutic_area_id="oncology",
            deployment_scenario_ids=frozenset({"clinical-trials"})))
        assert _question_ids(out)["s3"] == ["q6"]

    def test_empty_critical_section_retained(self, catalog):
        out = resolve_sections(catalog, AssessmentConfiguration(
            "ds", sub_persona_id="head", therapeutic_area_id="oncology"))
        s4 = next(s for s in out if s.section_id == "s4")
        assert s4.question_count == 0
        assert s4.section.is_critical_blocker

    def test_ordering_priority_desc_then_number(self, catalog):
        out = resolve_sections(catalog, AssessmentConfiguration(
            "ds", sub_persona_id="head", therapeutic_area_id="oncology"))
        assert _ids(out) == ["s2", "s4", "s1", "s5"]


# ── Admin bypass ──────────────────────────────────────────────────

class TestAdminBypass:
    def test_admin_sees_every_section_and_question(self, catalog):
        out = resolve_sections(catalog, AssessmentConfiguration("admin"))
        assert sorted(_ids(out)) == ["s1", "s2", "s3", "s4", "s5"]
        assert sum(s.question_count for s in out) == len(catalog.questions)
        assert all(s.is_required for s in out)

    def test_admin_explicit_priority_used_else_default(self, catalog):
        out = {s.section_id: s for s in resolve_sections(
            catalog, AssessmentConfiguration("admin", sub_persona_id="admin-full"))}
        assert out["s3"].priority_score == 1
        assert out["s1"].priority_score == 3

    def test_admin_ignores_unknown_therapy(self, catalog):
        out = resolve_sections(catalog, AssessmentConfiguration("admin", therapeutic_area_id="nope"))
        assert len(out) == 5


# ── Question filter unit ──────────────────────────────────────────

def test_is_question_eligible_generic_question(catalog):
    q = catalog.get_questions_for_section("s5")[0]
    assert is_question_eligible(q, sub_persona_ids=frozenset(), area_keys=frozenset(),
                                model_keys=frozenset(), scenario_keys=frozenset())


# ── Shipped catalog scenarios ─────────────────────────────────────

class TestShippedCatalog:
    def test_admin_receives_all_26_sections(self, shipped):
        out = resolve_sections(shipped, AssessmentConfiguration("admin", sub_persona_id="admin-full"))
        assert len(out) == 26
        assert sum(s.question_count for s in out) == len(shipped.questions)

    def test_data_head_oncology_receives_ten_mapped_sections(self, shipped):
        out = resolve_sections(shipped, AssessmentConfiguration(
            "data-science", sub_persona_id="data-head", therapeutic_area_id="oncology"))
        assert sorted(_ids(out)) == sorted([
            "ai-model-validation", "gmlp-framework", "algorithm-bias", "ai-interoperability",
            "advanced-data-gov", "tech-specific-governance", "ai-validation-general",
            "final-integration", "fda-seven-step", "context-of-use",
        ])
        assert _ids(out)[-1] == "fda-seven-step"

    def test_oncology_overlay_selects_oncology_questions_only(self, shipped):
        out = _question_ids(resolve_sections(shipped, AssessmentConfiguration(
            "data-science", sub_persona_id="data-head", therapeutic_area_id="oncology")))
        assert "amv-onc-001" in out["ai-model-validation"]
        assert "amv-card-001" not in out["ai-model-validation"]

    def test_resolution_is_deterministic(self, shipped):
        config = AssessmentConfiguration(
            "data-science", sub_persona_id="data-head", therapeutic_area_id="oncology",
            ai_model_type_ids=frozenset({"agentic-ai", "generative-ai"}))
        first = json.dumps([s.to_dict() for s in resolve_sections(shipped, config)], sort_keys=True)
        second = json.dumps([s.to_dict() for s in resolve_sections(shipped, config)], sort_keys=True)
        assert first == second
