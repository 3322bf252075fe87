"""Request parsing & configuration validation tests.

Run:  pytest test_configuration.py -v
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from catalog_packs.loader import load_pack
from engine.configuration import PreviewRequest, has_errors, validate_configuration
from schemas.domain import AssessmentConfiguration


@pytest.fixture(scope="module")
def pack():
    return load_pack("complianceiq", "v1.0")


class TestPreviewRequest:
    def test_query_string_lists_are_split(self):
        req = PreviewRequest.from_query({
            "personaId": "data-science",
            "subPersonaId": "data-head",
            "therapeuticAreaId": "oncology",
            "aiModelTypes": "generative-ai, agentic-ai,,",
            "deploymentScenarios": "",
        })
        config = req.to_configuration()
        assert config.ai_model_type_ids == frozenset({"generative-ai", "agentic-ai"})
        assert config.deployment_scenario_ids == frozenset()

    def test_json_lists_accepted(self):
        req = PreviewRequest.model_validate({
            "personaId": "executive",
            "aiModelTypes": ["nlp", " "],
        })
        assert req.ai_model_types == ["nlp"]

    def test_snake_case_names_accepted(self):
        req = PreviewRequest(persona_id="legal", therapeutic_area_id="oncology")
        assert req.to_configuration().therapeutic_area_id == "oncology"

    def test_blank_optional_ids_become_none(self):
        config = PreviewRequest.from_query({"personaId": "admin", "subPersonaId": "  "}).to_configuration()
        assert config.sub_persona_id is None

    def test_persona_required(self):
        with pytest.raises(ValidationError):
            PreviewRequest.from_query({"therapeuticAreaId": "oncology"})

    def test_configuration_round_trips_to_dict(self):
        config = PreviewRequest.from_query({
            "personaId": "clinical", "therapeuticAreaId": "pediatrics",
            "aiModelTypes": "nlp,edge-ai",
        }).to_configuration()
        assert config.to_dict()["aiModelTypes"] == ["edge-ai", "nlp"]


class TestValidateConfigurationPass:
    def test_valid_configuration_has_no_issues(self, pack):
        config = AssessmentConfiguration(
            "clinical", sub_persona_id="clinical-director", therapeutic_area_id="oncology",
            ai_model_type_ids=frozenset({"nlp"}),
            deployment_scenario_ids=frozenset({"clinical-trials"}))
        assert validate_configuration(pack, config) == []

    def test_admin_without_therapy_is_valid(self, pack):
        assert validate_configuration(pack, AssessmentConfiguration("admin")) == []

    def test_unknown_optional_ids_are_warnings(self, pack):
        config = AssessmentConfiguration(
            "clinical", therapeutic_area_id="oncology",
            ai_model_type_ids=frozenset({"quantum-ai"}),
            deployment_scenario_ids=frozenset({"space-medicine"}))
        issues = validate_configuration(pack, config)
        assert [i.severity for i in issues] == ["warning", "warning"]
        assert not has_errors(issues)


class TestValidateConfigurationFail:
    def test_every_problem_reported(self, pack):
        config = AssessmentConfiguration("ghost", sub_persona_id="ceo")
        issues = validate_configuration(pack, config)
        fields = [i.field for i in issues]
        assert "personaId" in fields
        assert "therapeuticAreaId" in fields
        assert has_errors(issues)

    def test_sub_persona_of_other_persona(self, pack):
        config = AssessmentConfiguration(
            "legal", sub_persona_id="ceo", therapeutic_area_id="oncology")
        issues = validate_configuration(pack, config)
        assert [i.to_dict()["field"] for i in issues] == ["subPersonaId"]
        assert "belongs to 'executive'" in issues[0].message

    def test_unknown_therapy_is_error_for_non_admin(self, pack):
        config = AssessmentConfiguration("legal", therapeutic_area_id="dermatology")
        issues = validate_configuration(pack, config)
        assert issues[0].severity == "error"
