# engine/catalog_validator.py — Fail-fast catalog enforcement.
"""Catalog integrity: every entity that enters the engine is complete.

There is **zero** fallback logic.  If a required field is missing, an
enum value is invalid, or a cross-reference dangles, the catalog refuses
to load and the engine never sees it.

``validate_and_build_catalog()`` validates the raw JSON dicts first and
only then constructs the frozen dataclasses from ``schemas.taxonomy``.
This is the **only** code path that creates catalog entities.

Usage
~~~~~
    from engine.catalog_validator import validate_and_build_catalog, CatalogViolation

    entities = validate_and_build_catalog(raw)
    # Returns CatalogEntities  — or raises CatalogViolation

Wire-in
~~~~~~~
Called by ``catalog_packs.loader.load_pack()`` before constructing the pack.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from schemas.taxonomy import (
    ALL_ACCESS_LEVELS,
    ALL_COMPLEXITY_TIERS,
    ALL_EXPERTISE_LEVELS,
    ALL_QUESTION_TYPES,
    ALL_RESPONSIBILITY_TYPES,
    ALL_SECTION_TYPES,
    DEFAULT_SCALE_CONFIGURATION,
    MAX_PRIORITY_SCORE,
    MIN_PRIORITY_SCORE,
    REQUIRED_FIELDS,
    AIModelType,
    DeploymentScenario,
    Persona,
    PersonaSectionMapping,
    Question,
    Section,
    SubPersona,
    TherapeuticArea,
)


# ── Exception ─────────────────────────────────────────────────────

class CatalogViolation(Exception):
    """Raised when one or more catalog entities are invalid.

    Contains a structured list of violations so callers can format them
    however they like (CLI table, JSON report, etc.).
    """

    def __init__(self, violations: list[dict[str, str]]) -> None:
        self.violations = violations
        lines = [f"  ✗ [{v['ref']}] {v['field']}: {v['detail']}" for v in violations]
        msg = (
            f"{len(violations)} catalog violation(s) — fix before loading:\n"
            + "\n".join(lines)
        )
        super().__init__(msg)


@dataclass(frozen=True)
class CatalogEntities:
    """Typed output of a successful validation pass, in catalog order."""

    personas: tuple[Persona, ...]
    sub_personas: tuple[SubPersona, ...]
    therapeutic_areas: tuple[TherapeuticArea, ...]
    ai_model_types: tuple[AIModelType, ...]
    deployment_scenarios: tuple[DeploymentScenario, ...]
    sections: tuple[Section, ...]
    questions: tuple[Question, ...]
    mappings: tuple[PersonaSectionMapping, ...]


# ── Enum validators per entity kind ───────────────────────────────

_ENUM_VALIDATORS: dict[str, dict[str, tuple[str, ...]]] = {
    "sub_persona":         {"expertiseLevel": ALL_EXPERTISE_LEVELS},
    "therapeutic_area":    {"complexity": ALL_COMPLEXITY_TIERS},
    "ai_model_type":       {"complexity": ALL_COMPLEXITY_TIERS},
    "deployment_scenario": {"complexity": ALL_COMPLEXITY_TIERS},
    "section":             {"sectionType": ALL_SECTION_TYPES},
    "question":            {"type": ALL_QUESTION_TYPES},
    "mapping":             {"accessLevel": ALL_ACCESS_LEVELS,
                            "responsibilityType": ALL_RESPONSIBILITY_TYPES},
}

_NON_NEGATIVE_INTS: dict[str, tuple[str, ...]] = {
    "therapeutic_area":    ("overlayPoints",),
    "ai_model_type":       ("complexityPoints",),
    "deployment_scenario": ("complexityPoints",),
    "section":             ("basePoints", "sectionNumber"),
    "question":            ("points",),
}


# ── Single entity validation ─────────────────────────────────────

def validate_entity(kind: str, ref: str, raw: dict[str, Any]) -> list[dict[str, str]]:
    """Validate one raw catalog dict of the given *kind*.

    Returns a (possibly empty) list of violation dicts:
        [{"ref": "...", "field": "...", "detail": "..."}]
    """
    violations: list[dict[str, str]] = []

    def _fail(field: str, detail: str) -> None:
        violations.append({"ref": ref, "field": field, "detail": detail})

    # ── 1.  Required field presence ───────────────────────────────
    for field in REQUIRED_FIELDS[kind]:
        val = raw.get(field)
        if val is None or (isinstance(val, str) and val.strip() == ""):
            _fail(field, "Missing or empty (required by REQUIRED_FIELDS)")

    # ── 2.  Enum value validation ─────────────────────────────────
    for field, allowed in _ENUM_VALIDATORS.get(kind, {}).items():
        val = raw.get(field)
        if val is not None and val not in allowed:
            _fail(field, f"'{val}' not in {list(allowed)}")

    # ── 3.  Integer fields ────────────────────────────────────────
    for field in _NON_NEGATIVE_INTS.get(kind, ()):
        val = raw.get(field)
        if val is not None and (not isinstance(val, int) or isinstance(val, bool) or val < 0):
            _fail(field, f"Must be a non-negative integer, got {val!r}")

    # ── 4.  Kind-specific shape rules ─────────────────────────────
    if kind == "mapping":
        prio = raw.get("priorityScore", MIN_PRIORITY_SCORE)
        if not isinstance(prio, int) or not MIN_PRIORITY_SCORE <= prio <= MAX_PRIORITY_SCORE:
            _fail("priorityScore",
                  f"{prio!r} outside {MIN_PRIORITY_SCORE}..{MAX_PRIORITY_SCORE}")

    if kind == "section" and raw.get("sectionNumber") == 0:
        _fail("sectionNumber", "Section numbers start at 1")

    if kind == "question":
        if raw.get("type") != "scale_1_5" and (raw.get("scaleLabels") or raw.get("scaleConfiguration")):
            _fail("scaleLabels", "Scale settings only apply to scale_1_5 questions")
        for list_field in ("evidenceRequired", "responsibleRole", "personaRelevant", "tags"):
            val = raw.get(list_field, [])
            if not isinstance(val, list) or not all(isinstance(v, str) for v in val):
                _fail(list_field, "Must be a list of strings")
        scale = _validate_scale_configuration(raw.get("scaleConfiguration"), _fail)
        _validate_scale_labels(raw.get("scaleLabels"), scale, _fail)

    if kind in ("therapeutic_area", "ai_model_type", "deployment_scenario"):
        val = raw.get("requirements", [])
        if not isinstance(val, list) or not all(isinstance(r, str) for r in val):
            _fail("requirements", "Must be a list of strings")

    return violations


def _is_int(val: Any) -> bool:
    return isinstance(val, int) and not isinstance(val, bool)


def _validate_scale_configuration(config: Any, fail: Any) -> dict[str, int]:
    """Return the effective scale (defaults merged in); record shape violations."""
    scale = dict(DEFAULT_SCALE_CONFIGURATION)
    if config is None:
        return scale
    if not isinstance(config, dict):
        fail("scaleConfiguration", "Must be an object")
        return scale
    for key, val in config.items():
        if key not in DEFAULT_SCALE_CONFIGURATION:
            fail("scaleConfiguration", f"Unknown key {key!r}")
        elif not _is_int(val):
            fail("scaleConfiguration", f"{key} must be an integer, got {val!r}")
        else:
            scale[key] = val
    if scale["min"] > scale["max"]:
        fail("scaleConfiguration", f"min {scale['min']} is greater than max {scale['max']}")
    if scale["step"] < 1:
        fail("scaleConfiguration", f"step must be at least 1, got {scale['step']}")
    return scale


def _validate_scale_labels(labels: Any, scale: dict[str, int], fail: Any) -> None:
    if labels is None:
        return
    if not isinstance(labels, dict):
        fail("scaleLabels", "Must be an object")
        return
    for key, text in labels.items():
        number = int(key) if isinstance(key, str) and key.strip().lstrip("-").isdigit() else None
        if number is None or not scale["min"] <= number <= scale["max"]:
            fail("scaleLabels",
                 f"Key {key!r} is not an integer in {scale['min']}..{scale['max']}")
        if not isinstance(text, str):
            fail("scaleLabels", f"Label for {key!r} must be a string")


# ── Cross-reference validation ───────────────────────────────────

def _check_unique(
    kind: str,
    items: list[dict[str, Any]],
    key: str,
    violations: list[dict[str, str]],
) -> None:
    seen: set[Any] = set()
    for raw in items:
        val = raw.get(key)
        if val is None:
            continue
        if val in seen:
            violations.append({
                "ref": f"{kind}.{val}",
                "field": key,
                "detail": f"Duplicate {key} {val!r}",
            })
        seen.add(val)


def _validate_references(raw: dict[str, list[dict[str, Any]]],
                         violations: list[dict[str, str]]) -> None:
    """Cross-check identifiers between catalog files.

    Appends any violations found to *violations* in-place.
    """
    for kind, items in raw.items():
        _check_unique(kind, items, "id", violations)
    _check_unique("section", raw["section"], "sectionNumber", violations)

    persona_ids = {p.get("id") for p in raw["persona"]}
    sub_owner = {s.get("id"): s.get("personaId") for s in raw["sub_persona"]}
    section_ids = {s.get("id") for s in raw["section"]}

    for sp in raw["sub_persona"]:
        if sp.get("personaId") not in persona_ids:
            violations.append({
                "ref": str(sp.get("id")),
                "field": "personaId",
                "detail": f"'{sp.get('personaId')}' is not a known persona",
            })

    for q in raw["question"]:
        if q.get("sectionId") not in section_ids:
            violations.append({
                "ref": str(q.get("id")),
                "field": "sectionId",
                "detail": f"'{q.get('sectionId')}' is not a known section",
            })
        relevant = q.get("personaRelevant", [])
        for sp_id in relevant if isinstance(relevant, list) else ():
            if sp_id not in sub_owner:
                violations.append({
                    "ref": str(q.get("id")),
                    "field": "personaRelevant",
                    "detail": f"'{sp_id}' is not a known sub-persona",
                })

    seen_keys: set[tuple[Any, Any, Any]] = set()
    for m in raw["mapping"]:
        persona_id = m.get("personaId")
        sub_id = m.get("subPersonaId")
        ref = f"{persona_id}/{sub_id or '*'}/{m.get('sectionId')}"
        if persona_id not in persona_ids:
            violations.append({"ref": ref, "field": "personaId",
                               "detail": f"'{persona_id}' is not a known persona"})
        if sub_id is not None and sub_owner.get(sub_id) != persona_id:
            violations.append({"ref": ref, "field": "subPersonaId",
                               "detail": f"'{sub_id}' does not belong to '{persona_id}'"})
        if m.get("sectionId") not in section_ids:
            violations.append({"ref": ref, "field": "sectionId",
                               "detail": f"'{m.get('sectionId')}' is not a known section"})
        key = (persona_id, sub_id, m.get("sectionId"))
        if key in seen_keys:
            violations.append({"ref": ref, "field": "mapping",
                               "detail": "Duplicate (persona, sub-persona, section) row"})
        seen_keys.add(key)


# ── Catalog-level validation ─────────────────────────────────────

_BUILDERS: dict[str, Any] = {
    "persona":             Persona,
    "sub_persona":         SubPersona,
    "therapeutic_area":    TherapeuticArea,
    "ai_model_type":       AIModelType,
    "deployment_scenario": DeploymentScenario,
    "section":             Section,
    "question":            Question,
    "mapping":             PersonaSectionMapping,
}


def _ref_of(kind: str, index: int, item: dict[str, Any]) -> str:
    if kind == "mapping":
        return f"{item.get('personaId')}/{item.get('subPersonaId') or '*'}/{item.get('sectionId')}"
    return str(item.get("id") or f"{kind}[{index}]")


def validate_and_build_catalog(raw: dict[str, list[dict[str, Any]]]) -> CatalogEntities:
    """Validate raw JSON catalog dicts and return typed entities.

    Three-phase approach:
      1. Validate each raw dict (per-field messages via ``validate_entity``).
      2. Cross-check identifiers, uniqueness and back-references.
      3. If all clear, construct frozen dataclass instances.

    Raises ``CatalogViolation`` if ANY entity or cross-check has ANY violation.

    Parameters
    ----------
    raw : dict[str, list[dict]]
        Keyed by entity kind (``persona``, ``sub_persona``,
        ``therapeutic_area``, ``ai_model_type``, ``deployment_scenario``,
        ``section``, ``question``, ``mapping``).
    """
    missing = [kind for kind in _BUILDERS if kind not in raw]
    if missing:
        raise CatalogViolation([
            {"ref": "*", "field": kind, "detail": "Catalog file section is missing"}
            for kind in missing
        ])
    for kind in ("persona", "section", "question"):
        if not raw[kind]:
            raise CatalogViolation([{
                "ref": "*",
                "field": kind,
                "detail": f"Catalog has zero {kind} entries, nothing to assess",
            }])

    all_violations: list[dict[str, str]] = []

    # ── Phase 1: per-entity field validation ──────────────────────
    for kind, items in raw.items():
        if kind not in _BUILDERS:
            continue
        for index, item in enumerate(items):
            all_violations.extend(validate_entity(kind, _ref_of(kind, index, item), item))

    # ── Phase 2: cross-reference checks ───────────────────────────
    _validate_references(raw, all_violations)

    if all_violations:
        raise CatalogViolation(all_violations)

    # ── Phase 3: construct frozen instances ───────────────────────
    # Phase 1 checked every value from_json converts.
    built = {
        kind: tuple(builder.from_json(item) for item in raw[kind])
        for kind, builder in _BUILDERS.items()
    }
    return CatalogEntities(
        personas=built["persona"],
        sub_personas=built["sub_persona"],
        therapeutic_areas=built["therapeutic_area"],
        ai_model_types=built["ai_model_type"],
        deployment_scenarios=built["deployment_scenario"],
        sections=built["section"],
        questions=built["question"],
        mappings=built["mapping"],
    )
