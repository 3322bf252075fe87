# engine/configuration.py — Request parsing & pre-flight configuration checks.
"""Turn caller input into an ``AssessmentConfiguration`` and check it.

``PreviewRequest`` parses query-string / JSON input (camelCase aliases,
comma-separated multi-selects).  ``validate_configuration`` reports every
problem with a configuration without raising, so a caller can show all
messages at once before asking the engine for a preview.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalog_packs.loader import CatalogPack
from schemas.domain import AssessmentConfiguration

IssueSeverity = Literal["error", "warning"]


# ══════════════════════════════════════════════════════════════════
# Request parsing
# ══════════════════════════════════════════════════════════════════

def _split_ids(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


class PreviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    persona_id: str = Field(
        alias="personaId",
        min_length=1,
        description="Persona the assessment is composed for (e.g. 'data-science').",
    )
    sub_persona_id: str | None = Field(
        default=None,
        alias="subPersonaId",
        description="Optional sub-persona; must belong to the persona.",
    )
    therapeutic_area_id: str | None = Field(
        default=None,
        alias="therapeuticAreaId",
        description="Therapeutic area overlay.  Required for non-admin personas.",
    )
    company_id: str | None = Field(
        default=None,
        alias="companyId",
        description="Company the assessment belongs to.  Not used for selection.",
    )
    ai_model_types: list[str] = Field(
        default_factory=list,
        alias="aiModelTypes",
        description="AI model type ids; list or comma-separated string.",
    )
    deployment_scenarios: list[str] = Field(
        default_factory=list,
        alias="deploymentScenarios",
        description="Deployment scenario ids; list or comma-separated string.",
    )

    @field_validator("ai_model_types", "deployment_scenarios", mode="before")
    @classmethod
    def _split_multi_select(cls, value: Any) -> list[str]:
        return _split_ids(value)

    @field_validator("sub_persona_id", "therapeutic_area_id", "company_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> PreviewRequest:
        """Parse a flat query mapping (``?personaId=…&aiModelTypes=a,b``)."""
        return cls.model_validate(dict(query))

    def to_configuration(self) -> AssessmentConfiguration:
        return AssessmentConfiguration(
            persona_id=self.persona_id.strip(),
            sub_persona_id=self.sub_persona_id,
            therapeutic_area_id=self.therapeutic_area_id,
            company_id=self.company_id,
            ai_model_type_ids=frozenset(self.ai_model_types),
            deployment_scenario_ids=frozenset(self.deployment_scenarios),
        )


# ══════════════════════════════════════════════════════════════════
# Configuration validation
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ConfigurationIssue:
    severity: IssueSeverity
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"severity": self.severity, "field": self.field, "message": self.message}


def validate_configuration(
    catalog: CatalogPack,
    config: AssessmentConfiguration,
) -> list[ConfigurationIssue]:
    """Return every problem with *config* (empty list = valid).  Never raises.

    Errors would make ``compose_preview`` fail; warnings are references
    the engine skips.
    """
    issues: list[ConfigurationIssue] = []

    def _add(severity: IssueSeverity, field: str, message: str) -> None:
        issues.append(ConfigurationIssue(severity, field, message))

    persona = catalog.get_persona(config.persona_id)
    if persona is None:
        _add("error", "personaId", f"Unknown persona '{config.persona_id}'")

    if config.sub_persona_id is not None:
        sub = catalog.get_sub_persona(config.sub_persona_id)
        if sub is None:
            _add("error", "subPersonaId", f"Unknown sub-persona '{config.sub_persona_id}'")
        elif persona is not None and sub.persona_id != persona.persona_id:
            _add("error", "subPersonaId",
                 f"Sub-persona '{sub.sub_persona_id}' belongs to '{sub.persona_id}', "
                 f"not '{persona.persona_id}'")

    is_admin = persona is not None and persona.is_admin
    if not config.therapeutic_area_id:
        if not is_admin:
            _add("error", "therapeuticAreaId", "A therapeutic area is required")
    elif catalog.get_therapeutic_area(config.therapeutic_area_id) is None:
        _add("warning" if is_admin else "error", "therapeuticAreaId",
             f"Unknown therapeutic area '{config.therapeutic_area_id}'")

    for mid in sorted(config.ai_model_type_ids):
        if catalog.get_ai_model_type(mid) is None:
            _add("warning", "aiModelTypes", f"Unknown AI model type '{mid}' will be ignored")
    for did in sorted(config.deployment_scenario_ids):
        if catalog.get_deployment_scenario(did) is None:
            _add("warning", "deploymentScenarios",
                 f"Unknown deployment scenario '{did}' will be ignored")

    return issues


def has_errors(issues: list[ConfigurationIssue]) -> bool:
    return any(i.severity == "error" for i in issues)
