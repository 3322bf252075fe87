"""Catalog pack loader — discovers and loads versioned assessment catalogs.

Usage:
    from catalog_packs.loader import load_pack, list_packs
    pack = load_pack("complianceiq", "v1.0")
    pack.sections   # tuple[Section, ...] — frozen, typed
    pack.get_persona("executive")

Catalog enforcement:
    Every ``load_pack()`` call runs ``validate_and_build_catalog()``
    which validates raw JSON dicts and constructs frozen entities.  If
    ANY entity has a missing or invalid field the loader raises
    ``CatalogViolation`` — the engine never sees the pack.

Version locking:
    The complianceiq v1.0 pack is frozen.  A SHA-256 checksum over the
    catalog files (in manifest order) is verified at load time.  If a
    file changes without an explicit version bump the loader raises
    ``CatalogPackVersionError``.
"""
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from schemas.taxonomy import (
    AIModelType,
    DeploymentScenario,
    Persona,
    PersonaSectionMapping,
    Question,
    Section,
    SubPersona,
    TherapeuticArea,
)
from engine.catalog_validator import validate_and_build_catalog

_log = logging.getLogger(__name__)

# ── Version-locked checksums ──────────────────────────────────────
# SHA-256 of the catalog files, concatenated in _CATALOG_FILES order,
# for each frozen version.  Any content change requires an explicit
# version bump (new directory under catalog_packs/<family>/).
_FROZEN_CHECKSUMS: dict[str, str] = {
    "complianceiq/v1.0": "29a48b4f67cc970c",  # 26 sections, 96 questions, 9 personas
}

# (manifest key, default file name, JSON keys → entity kinds)
_CATALOG_FILES: tuple[tuple[str, str, dict[str, str]], ...] = (
    ("personas_ref",  "personas.json",  {"personas": "persona",
                                         "subPersonas": "sub_persona"}),
    ("overlays_ref",  "overlays.json",  {"therapeuticAreas": "therapeutic_area",
                                         "aiModelTypes": "ai_model_type",
                                         "deploymentScenarios": "deployment_scenario"}),
    ("sections_ref",  "sections.json",  {"sections": "section"}),
    ("questions_ref", "questions.json", {"questions": "question"}),
    ("mappings_ref",  "mappings.json",  {"mappings": "mapping"}),
)


class CatalogPackVersionError(Exception):
    """Raised when a frozen catalog pack's checksum does not match."""
    pass


@dataclass(frozen=True)
class CatalogPack:
    """A loaded, immutable catalog snapshot.

    Every entity is a frozen, typed dataclass.  Lookup indexes are built
    once in ``__post_init__``; the ``get_*`` accessors return ``None``
    for "not found" rather than raising.
    """
    pack_id: str
    name: str
    version: str
    description: str
    personas: tuple[Persona, ...]
    sub_personas: tuple[SubPersona, ...]
    therapeutic_areas: tuple[TherapeuticArea, ...]
    ai_model_types: tuple[AIModelType, ...]
    deployment_scenarios: tuple[DeploymentScenario, ...]
    sections: tuple[Section, ...]
    questions: tuple[Question, ...]
    mappings: tuple[PersonaSectionMapping, ...]
    manifest: dict[str, Any] = field(default_factory=dict, compare=False)
    catalog_checksum: str = ""

    def __post_init__(self) -> None:
        by_section: dict[str, list[Question]] = {s.section_id: [] for s in self.sections}
        for q in self.questions:
            by_section.setdefault(q.section_id, []).append(q)
        by_persona: dict[str, list[PersonaSectionMapping]] = {}
        for m in self.mappings:
            by_persona.setdefault(m.persona_id, []).append(m)

        object.__setattr__(self, "_personas", {p.persona_id: p for p in self.personas})
        object.__setattr__(self, "_sub_personas", {s.sub_persona_id: s for s in self.sub_personas})
        object.__setattr__(self, "_areas", {a.area_id: a for a in self.therapeutic_areas})
        object.__setattr__(self, "_models", {m.model_type_id: m for m in self.ai_model_types})
        object.__setattr__(self, "_scenarios", {d.scenario_id: d for d in self.deployment_scenarios})
        object.__setattr__(self, "_sections", {s.section_id: s for s in self.sections})
        object.__setattr__(self, "_questions_by_section",
                           {k: tuple(v) for k, v in by_section.items()})
        object.__setattr__(self, "_mappings_by_persona",
                           {k: tuple(v) for k, v in by_persona.items()})

    @property
    def version_tag(self) -> str:
        """Canonical version identifier for preview metadata (e.g. 'complianceiq-v1.0')."""
        return self.pack_id or f"{self.manifest.get('pack_id', 'unknown')}"

    # ── Read API ──────────────────────────────────────────────────

    def get_persona(self, persona_id: str) -> Persona | None:
        return self._personas.get(persona_id)

    def get_sub_persona(self, sub_persona_id: str) -> SubPersona | None:
        return self._sub_personas.get(sub_persona_id)

    def list_sub_personas(self, persona_id: str) -> tuple[SubPersona, ...]:
        return tuple(s for s in self.sub_personas if s.persona_id == persona_id)

    def get_section(self, section_id: str) -> Section | None:
        return self._sections.get(section_id)

    def list_sections_for_persona(
        self,
        persona_id: str,
        sub_persona_id: str | None = None,
    ) -> tuple[PersonaSectionMapping, ...] | None:
        """Mapping rows visible to a persona (optionally one sub-persona).

        With a sub-persona: that sub-persona's rows plus persona-wide rows.
        Without one: every row of the persona.  ``None`` for an unknown persona.
        """
        if persona_id not in self._personas:
            return None
        rows = self._mappings_by_persona.get(persona_id, ())
        if sub_persona_id is None:
            return rows
        return tuple(m for m in rows if m.sub_persona_id in (sub_persona_id, None))

    def get_questions_for_section(self, section_id: str) -> tuple[Question, ...] | None:
        return self._questions_by_section.get(section_id)

    def get_therapeutic_area(self, area_id: str) -> TherapeuticArea | None:
        return self._areas.get(area_id)

    def get_ai_model_type(self, model_type_id: str) -> AIModelType | None:
        return self._models.get(model_type_id)

    def get_deployment_scenario(self, scenario_id: str) -> DeploymentScenario | None:
        return self._scenarios.get(scenario_id)

    def counts(self) -> dict[str, int]:
        return {
            "personas": len(self.personas),
            "sub_personas": len(self.sub_personas),
            "therapeutic_areas": len(self.therapeutic_areas),
            "ai_model_types": len(self.ai_model_types),
            "deployment_scenarios": len(self.deployment_scenarios),
            "sections": len(self.sections),
            "questions": len(self.questions),
            "mappings": len(self.mappings),
        }


PACKS_DIR = Path(__file__).parent


def list_packs() -> list[dict[str, str]]:
    """Discover all available catalog packs under catalog_packs/."""
    packs = []
    for manifest_path in sorted(PACKS_DIR.rglob("manifest.json")):
        try:
            with open(manifest_path, encoding="utf-8") as f:
                m = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            _log.warning("Skipping unreadable manifest %s: %s", manifest_path, exc)
            continue
        packs.append({
            "pack_id": m.get("pack_id", "unknown"),
            "name": m.get("name", ""),
            "version": m.get("version", ""),
            "path": str(manifest_path.parent),
        })
    return packs


def load_pack(
    family: str = "complianceiq",
    version: str = "v1.0",
    *,
    packs_dir: Path | None = None,
) -> CatalogPack:
    """
    Load a catalog pack by family and version.

    Flow:
      1. Read manifest and every catalog JSON file from disk.
      2. ``validate_and_build_catalog()`` validates raw dicts and
         constructs frozen entities.
      3. Verify the version-lock checksum for frozen packs.

    Args:
        family: Pack family directory name (e.g. "complianceiq")
        version: Version directory name (e.g. "v1.0")
        packs_dir: Root to search instead of ``PACKS_DIR`` (tests)

    Returns:
        CatalogPack with all entities loaded.
    """
    pack_dir = (packs_dir or PACKS_DIR) / family / version

    manifest_path = pack_dir / "manifest.json"
    if not manifest_path.exists():
        raise FileNotFoundError(f"Catalog pack not found: {pack_dir}")
    with open(manifest_path, encoding="utf-8") as f:
        manifest = json.load(f)

    # ── Read catalog files + running checksum ─────────────────────
    digest = hashlib.sha256()
    raw: dict[str, list[dict[str, Any]]] = {}
    for ref_key, default_name, kinds in _CATALOG_FILES:
        path = pack_dir / manifest.get(ref_key, default_name)
        with open(path, "rb") as fb:
            blob = fb.read()
        digest.update(blob)
        data = json.loads(blob.decode("utf-8"))
        for json_key, kind in kinds.items():
            raw[kind] = data.get(json_key, [])

    # ── Catalog enforcement + typed construction ──────────────────
    # Returns CatalogEntities or raises CatalogViolation.
    entities = validate_and_build_catalog(raw)

    # ── Version-lock guardrail ────────────────────────────────────
    catalog_checksum = digest.hexdigest()[:16]
    pack_key = f"{family}/{version}"
    expected = _FROZEN_CHECKSUMS.get(pack_key)
    if expected and catalog_checksum != expected:
        raise CatalogPackVersionError(
            f"Catalog pack '{pack_key}' is version-locked (expected checksum "
            f"{expected}, got {catalog_checksum}).  If you modified the catalog, "
            f"create a new version directory (e.g. {family}/v1.1/) and update "
            f"_FROZEN_CHECKSUMS in catalog_packs/loader.py."
        )
    if expected:
        _log.debug("Catalog pack %s: checksum verified (%s)", pack_key, catalog_checksum)

    pack = CatalogPack(
        pack_id=manifest.get("pack_id", ""),
        name=manifest.get("name", ""),
        version=manifest.get("version", ""),
        description=manifest.get("description", ""),
        personas=entities.personas,
        sub_personas=entities.sub_personas,
        therapeutic_areas=entities.therapeutic_areas,
        ai_model_types=entities.ai_model_types,
        deployment_scenarios=entities.deployment_scenarios,
        sections=entities.sections,
        questions=entities.questions,
        mappings=entities.mappings,
        manifest=manifest,
        catalog_checksum=catalog_checksum,
    )
    _log.debug("Loaded catalog pack %s: %s", pack_key, pack.counts())
    return pack
