"""Assessment preview composition tests.

Run:  pytest test_preview.py -v
"""
from __future__ import annotations

import json

import pytest

from catalog_packs.loader import load_pack
from catalog_packs.store import CatalogStore
from engine import preview as preview_module
from engine.errors import EmptyConfigurationError, UnknownPersonaError
from engine.preview import compose_preview
from schemas.domain import AssessmentConfiguration

PAYLOAD_KEYS = {
    "sections", "totalSections", "totalQuestions", "totalPoints", "criticalSections",
    "productionBlockers", "estimatedTime", "estimatedTimeMinutes", "complexity",
    "skippedReferences",
}


@pytest.fixture(scope="module")
def pack():
    return load_pack("complianceiq", "v1.0")


@pytest.fixture
def data_head_config():
    return AssessmentConfiguration(
        persona_id="data-science",
        sub_persona_id="data-head",
        therapeutic_area_id="oncology",
        company_id="acme-pharma",
        ai_model_type_ids=frozenset({"agentic-ai", "generative-ai"}),
    )


class TestComposePreview:
    def test_payload_shape(self, pack, data_head_config):
        payload = compose_preview(data_head_config, pack).to_dict()
        assert set(payload) == PAYLOAD_KEYS
        assert set(payload["complexity"]) == {
            "therapyScore", "modelScore", "deploymentScore", "totalComplexity", "badge"}

    def test_totals_are_consistent(self, pack, data_head_config):
        preview = compose_preview(data_head_config, pack)
        payload = preview.to_dict()
        assert payload["totalSections"] == len(payload["sections"]) == 10
        assert payload["totalQuestions"] == sum(s["questionCount"] for s in payload["sections"])
        assert payload["totalPoints"] == sum(s["totalPoints"] for s in payload["sections"])
        assert payload["productionBlockers"] == sum(s["blockerCount"] for s in payload["sections"])
        assert payload["estimatedTimeMinutes"] == -(-payload["totalQuestions"] * 5 // 2)
        assert payload["complexity"]["modelScore"] == 35
        assert payload["complexity"]["deploymentScore"] == 0

    def test_model_specific_questions_follow_selection(self, pack, data_head_config):
        payload = compose_preview(data_head_config, pack).to_dict()
        tsg = next(s for s in payload["sections"] if s["id"] == "tech-specific-governance")
        ids = [q["id"] for q in tsg["questions"]]
        assert "tsg-genai-001" in ids
        assert "tsg-agent-001" in ids
        assert "tsg-cv-001" not in ids

    def test_deterministic_output(self, pack, data_head_config):
        first = json.dumps(compose_preview(data_head_config, pack).to_dict(), sort_keys=True)
        second = json.dumps(compose_preview(data_head_config, pack).to_dict(), sort_keys=True)
        assert first == second

    def test_admin_preview_has_every_section(self, pack):
        preview = compose_preview(AssessmentConfiguration("admin", sub_persona_id="admin-full"), pack)
        assert preview.total_sections == 26
        assert preview.critical_sections == sum(1 for s in pack.sections if s.is_critical_blocker)
        assert preview.total_questions == len(pack.questions)

    def test_skipped_references_serialised(self, pack):
        config = AssessmentConfiguration(
            "quality", sub_persona_id="qa-director", therapeutic_area_id="cardiology",
            deployment_scenario_ids=frozenset({"space-medicine"}))
        payload = compose_preview(config, pack).to_dict()
        assert payload["skippedReferences"] == [{
            "code": "unknown_catalog_reference",
            "kind": "deployment scenario",
            "id": "space-medicine",
            "message": "Unknown deployment scenario: 'space-medicine'",
        }]

    def test_engine_errors_propagate(self, pack):
        with pytest.raises(UnknownPersonaError):
            compose_preview(AssessmentConfiguration("ghost"), pack)
        with pytest.raises(EmptyConfigurationError):
            compose_preview(AssessmentConfiguration("legal", sub_persona_id="legal-counsel"), pack)


class TestDefaultStore:
    def test_uses_store_snapshot_when_no_catalog(self, monkeypatch, data_head_config):
        store = CatalogStore("complianceiq", "v1.0")
        monkeypatch.setattr(preview_module, "default_store", lambda: store)
        preview = compose_preview(data_head_config)
        assert preview.catalog_version == "complianceiq-v1.0"
        assert preview.total_sections == 10
