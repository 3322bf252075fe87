# schemas/taxonomy.py — Single authoritative taxonomy for the assessment catalog.
"""Centralised taxonomy for the pharmaceutical AI-compliance assessment.

Catalog Integrity (Non-Negotiable)
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Every reference entity is a **frozen dataclass** — typed, immutable,
validated at load time.  No ``dict[str, Any]`` access patterns leave the
catalog boundary.  If a field is missing or an enum value is invalid the
catalog refuses to load.

Canonical sources defined here:
  - ``ComplexityTier``        — Low | Medium | High | Critical
  - ``ExpertiseLevel``        — basic | intermediate | expert
  - ``QuestionType``          — boolean | scale_1_5 | free_text
  - ``AccessLevel`` / ``ResponsibilityType`` — mapping-row enums
  - ``Persona`` … ``PersonaSectionMapping`` — frozen catalog entities
  - ``MINUTES_PER_QUESTION``  — fixed time-estimate constant
  - ``READINESS_TIERS``       — completion-percentage bands
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, get_args


# ══════════════════════════════════════════════════════════════════
# Canonical enums — enforced at load time, not aspirational
# ══════════════════════════════════════════════════════════════════

ComplexityTier = Literal["Low", "Medium", "High", "Critical"]

ALL_COMPLEXITY_TIERS: tuple[str, ...] = get_args(ComplexityTier)

ExpertiseLevel = Literal["basic", "intermediate", "expert"]

ALL_EXPERTISE_LEVELS: tuple[str, ...] = get_args(ExpertiseLevel)

QuestionType = Literal["boolean", "scale_1_5", "free_text"]

ALL_QUESTION_TYPES: tuple[str, ...] = get_args(QuestionType)

AccessLevel = Literal["primary", "secondary"]

ALL_ACCESS_LEVELS: tuple[str, ...] = get_args(AccessLevel)

ResponsibilityType = Literal["owner", "approver", "reviewer"]

ALL_RESPONSIBILITY_TYPES: tuple[str, ...] = get_args(ResponsibilityType)

SectionType = Literal["regulatory", "governance", "clinical", "safety"]

ALL_SECTION_TYPES: tuple[str, ...] = get_args(SectionType)

CompletionStatus = Literal["complete", "in_progress", "not_started"]

ALL_COMPLETION_STATUSES: tuple[str, ...] = get_args(CompletionStatus)

# Priority bounds for persona → section mapping rows
MIN_PRIORITY_SCORE = 1
MAX_PRIORITY_SCORE = 3

# Admin sees every section; rows absent from the pack get this priority.
ADMIN_DEFAULT_PRIORITY = MAX_PRIORITY_SCORE


# ══════════════════════════════════════════════════════════════════
# Engine constants
# ══════════════════════════════════════════════════════════════════

# estimated_time_minutes = ceil(total_questions × MINUTES_PER_QUESTION)
MINUTES_PER_QUESTION: float = 2.5

# Answered points / total points needed for a production-ready verdict
PRODUCTION_COMPLETION_THRESHOLD: float = 0.85

# scale_1_5 answers at or above this value count as passing
SCALE_PASS_THRESHOLD: int = 4

# Scale answers at or below this value are improvement areas
SCALE_IMPROVEMENT_CEILING: int = 2

DEFAULT_SCALE_CONFIGURATION: dict[str, int] = {"min": 1, "max": 5, "step": 1}

DEFAULT_SCALE_LABELS: dict[int, str] = {
    1: "Not implemented",
    2: "Partially implemented",
    3: "Mostly implemented",
    4: "Well implemented",
    5: "Fully implemented",
}

# ── Readiness tiers (completion percentage lower bounds) ─────────
# Ordered high → low.  First band whose floor is met wins.
READINESS_TIERS: tuple[tuple[str, float], ...] = (
    ("production_ready",     90.0),
    ("conditional",          80.0),
    ("pre_production",       70.0),
    ("development_complete", 60.0),
    ("not_ready",             0.0),
)

ALL_READINESS_TIERS: tuple[str, ...] = tuple(name for name, _ in READINESS_TIERS)

# Compile-time: bands descend and the last one catches everything
assert [floor for _, floor in READINESS_TIERS] == sorted(
    (floor for _, floor in READINESS_TIERS), reverse=True
), "READINESS_TIERS must be ordered by descending floor"
assert READINESS_TIERS[-1][1] == 0.0, "READINESS_TIERS needs a 0.0 catch-all band"

# ── Complexity badge (advisory, driven by total complexity) ──────
COMPLEXITY_BADGES: tuple[tuple[str, int], ...] = (
    ("Critical", 60),
    ("High",     40),
    ("Medium",   20),
    ("Low",       0),
)

assert {name for name, _ in COMPLEXITY_BADGES} == set(ALL_COMPLEXITY_TIERS), \
    f"COMPLEXITY_BADGES gap: {set(ALL_COMPLEXITY_TIERS) - {name for name, _ in COMPLEXITY_BADGES}}"

# ── Progress milestones (percentage thresholds) ──────────────────
PROGRESS_MILESTONES: tuple[tuple[str, str, int], ...] = (
    ("started",        "Assessment Started",   0),
    ("quarter",        "25% Complete",        25),
    ("half",           "50% Complete",        50),
    ("three-quarters", "75% Complete",        75),
    ("completed",      "Assessment Complete", 100),
)


def _check_enum(ref: str, field_name: str, value: Any, allowed: tuple[str, ...]) -> None:
    if value not in allowed:
        raise ValueError(
            f"[{ref}] Invalid {field_name}: {value!r} — expected one of {list(allowed)}"
        )


def _match_keys(*groups: Any) -> frozenset[str]:
    """Case-insensitive tag set used by the eligibility intersection rules."""
    keys: set[str] = set()
    for group in groups:
        if isinstance(group, str):
            group = (group,)
        for item in group:
            if item and item.strip():
                keys.add(item.strip().casefold())
    return frozenset(keys)


# ══════════════════════════════════════════════════════════════════
# Personas
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Persona:
    """Role-based view.  ``is_admin`` personas see every section."""

    persona_id: str
    name: str
    description: str
    is_admin: bool = False

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Persona:
        return cls(
            persona_id=raw["id"],
            name=raw["name"],
            description=raw.get("description", ""),
            is_admin=bool(raw.get("isAdmin", False)),
        )


@dataclass(frozen=True)
class SubPersona:
    """Specialisation of a persona.  ``persona_id`` is a back-reference."""

    sub_persona_id: str
    persona_id: str
    name: str
    description: str
    expertise_level: str               # ExpertiseLevel literal

    def __post_init__(self) -> None:
        _check_enum(self.sub_persona_id, "expertise_level",
                    self.expertise_level, ALL_EXPERTISE_LEVELS)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> SubPersona:
        return cls(
            sub_persona_id=raw["id"],
            persona_id=raw["personaId"],
            name=raw["name"],
            description=raw.get("description", ""),
            expertise_level=raw["expertiseLevel"],
        )


# ══════════════════════════════════════════════════════════════════
# Configuration overlays — therapy / model type / deployment
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TherapeuticArea:
    """Therapy overlay.  ``overlay_points`` feed the complexity score."""

    area_id: str
    name: str
    complexity: str                    # ComplexityTier literal
    overlay_points: int
    requirements: tuple[str, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        _check_enum(self.area_id, "complexity", self.complexity, ALL_COMPLEXITY_TIERS)
        if self.overlay_points < 0:
            raise ValueError(f"[{self.area_id}] overlay_points must be >= 0")

    @property
    def requirement_keys(self) -> frozenset[str]:
        """Tags a therapy-specific question must intersect (id included)."""
        return _match_keys(self.area_id, self.requirements)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> TherapeuticArea:
        return cls(
            area_id=raw["id"],
            name=raw["name"],
            complexity=raw["complexity"],
            overlay_points=int(raw["overlayPoints"]),
            requirements=tuple(raw.get("requirements", [])),
            description=raw.get("description", ""),
        )


@dataclass(frozen=True)
class AIModelType:
    model_type_id: str
    name: str
    complexity: str                    # ComplexityTier literal
    complexity_points: int
    requirements: tuple[str, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        _check_enum(self.model_type_id, "complexity", self.complexity, ALL_COMPLEXITY_TIERS)
        if self.complexity_points < 0:
            raise ValueError(f"[{self.model_type_id}] complexity_points must be >= 0")

    @property
    def requirement_keys(self) -> frozenset[str]:
        return _match_keys(self.model_type_id, self.requirements)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> AIModelType:
        return cls(
            model_type_id=raw["id"],
            name=raw["name"],
            complexity=raw["complexity"],
            complexity_points=int(raw["complexityPoints"]),
            requirements=tuple(raw.get("requirements", [])),
            description=raw.get("description", ""),
        )


@dataclass(frozen=True)
class DeploymentScenario:
    scenario_id: str
    name: str
    complexity: str                    # ComplexityTier literal
    complexity_points: int
    requirements: tuple[str, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        _check_enum(self.scenario_id, "complexity", self.complexity, ALL_COMPLEXITY_TIERS)
        if self.complexity_points < 0:
            raise ValueError(f"[{self.scenario_id}] complexity_points must be >= 0")

    @property
    def requirement_keys(self) -> frozenset[str]:
        return _match_keys(self.scenario_id, self.requirements)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> DeploymentScenario:
        return cls(
            scenario_id=raw["id"],
            name=raw["name"],
            complexity=raw["complexity"],
            complexity_points=int(raw["complexityPoints"]),
            requirements=tuple(raw.get("requirements", [])),
            description=raw.get("description", ""),
        )


# ══════════════════════════════════════════════════════════════════
# Sections & questions
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Section:
    """Numbered compliance topic.

    ``is_critical_blocker`` marks the whole section as mandatory for
    production readiness.
    """

    section_id: str
    section_number: int
    title: str
    base_points: int
    is_critical_blocker: bool
    section_type: str                  # SectionType literal
    validator: str = ""

    def __post_init__(self) -> None:
        _check_enum(self.section_id, "section_type", self.section_type, ALL_SECTION_TYPES)
        if self.section_number < 1:
            raise ValueError(f"[{self.section_id}] section_number must be >= 1")

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Section:
        return cls(
            section_id=raw["id"],
            section_number=int(raw["sectionNumber"]),
            title=raw["title"],
            base_points=int(raw["basePoints"]),
            is_critical_blocker=bool(raw["isCriticalBlocker"]),
            section_type=raw["sectionType"],
            validator=raw.get("validator", ""),
        )


@dataclass(frozen=True)
class Question:
    """Typed, immutable question definition.

    Field mapping from questions.json → dataclass:
        id                 →  question_id
        type               →  question_type
        responsibleRole    →  responsible_roles (list → tuple)
        personaRelevant    →  persona_relevant (list → frozenset)
        scaleLabels keys   →  int

    Computed (set in ``__post_init__``):
        match_keys — case-folded ``category`` ∪ ``tags`` used by the
                     therapy / model / deployment intersection rules
    """

    # ── Identity ──────────────────────────────────────────────────
    question_id: str
    section_id: str
    text: str

    # ── Scoring ───────────────────────────────────────────────────
    question_type: str                 # QuestionType literal
    points: int
    is_blocker: bool
    category: str

    # ── Evidence & ownership ──────────────────────────────────────
    evidence_required: tuple[str, ...] = ()
    responsible_roles: tuple[str, ...] = ()

    # ── Scale configuration (scale_1_5 only) ──────────────────────
    scale_labels: tuple[tuple[int, str], ...] = ()
    scale_configuration: tuple[tuple[str, int], ...] = ()

    # ── Selection filters ─────────────────────────────────────────
    therapy_specific: bool = False
    ai_model_type_specific: bool = False
    deployment_scenario_specific: bool = False
    persona_relevant: frozenset[str] = frozenset()
    tags: tuple[str, ...] = ()

    match_keys: frozenset[str] = field(init=False)

    def __post_init__(self) -> None:
        _check_enum(self.question_id, "question_type", self.question_type, ALL_QUESTION_TYPES)
        if self.points < 0:
            raise ValueError(f"[{self.question_id}] points must be >= 0")
        if self.question_type != "scale_1_5" and (self.scale_labels or self.scale_configuration):
            raise ValueError(
                f"[{self.question_id}] scale settings only apply to scale_1_5 questions"
            )
        object.__setattr__(self, "match_keys", _match_keys(self.category, self.tags))

    @property
    def scale(self) -> dict[str, int]:
        """Scale bounds for scale_1_5 questions ({} otherwise)."""
        if self.question_type != "scale_1_5":
            return {}
        return {**DEFAULT_SCALE_CONFIGURATION, **dict(self.scale_configuration)}

    @property
    def labels(self) -> dict[int, str]:
        if self.question_type != "scale_1_5":
            return {}
        return dict(self.scale_labels) or dict(DEFAULT_SCALE_LABELS)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.question_id,
            "sectionId": self.section_id,
            "text": self.text,
            "type": self.question_type,
            "points": self.points,
            "isBlocker": self.is_blocker,
            "category": self.category,
            "evidenceRequired": list(self.evidence_required),
            "responsibleRole": list(self.responsible_roles),
        }
        if self.question_type == "scale_1_5":
            out["scaleLabels"] = {str(k): v for k, v in sorted(self.labels.items())}
            out["scaleConfiguration"] = self.scale
        return out

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Question:
        """Construct from a raw ``questions.json`` entry.

        Raises ``KeyError`` if a required JSON field is missing.
        Raises ``ValueError`` if an enum value is invalid (via __post_init__).
        """
        labels = raw.get("scaleLabels") or {}
        config = raw.get("scaleConfiguration") or {}
        return cls(
            question_id=raw["id"],
            section_id=raw["sectionId"],
            text=raw["text"],
            question_type=raw["type"],
            points=int(raw["points"]),
            is_blocker=bool(raw.get("isBlocker", False)),
            category=raw["category"],
            evidence_required=tuple(raw.get("evidenceRequired", [])),
            responsible_roles=tuple(raw.get("responsibleRole", [])),
            scale_labels=tuple(sorted((int(k), str(v)) for k, v in labels.items())),
            scale_configuration=tuple(sorted(
                (k, int(v)) for k, v in config.items() if k in DEFAULT_SCALE_CONFIGURATION
            )),
            therapy_specific=bool(raw.get("therapySpecific", False)),
            ai_model_type_specific=bool(raw.get("aiModelTypeSpecific", False)),
            deployment_scenario_specific=bool(raw.get("deploymentScenarioSpecific", False)),
            persona_relevant=frozenset(raw.get("personaRelevant", [])),
            tags=tuple(raw.get("tags", [])),
        )


# ══════════════════════════════════════════════════════════════════
# Persona → section mapping
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PersonaSectionMapping:
    """One (persona, sub-persona, section) row.

    ``sub_persona_id`` of ``None`` applies the row to every sub-persona
    of the persona.
    """

    persona_id: str
    sub_persona_id: str | None
    section_id: str
    access_level: str                  # AccessLevel literal
    responsibility_type: str           # ResponsibilityType literal
    can_edit: bool
    can_approve: bool
    can_review: bool
    is_required: bool
    priority_score: int

    def __post_init__(self) -> None:
        _check_enum(self.key_label, "access_level", self.access_level, ALL_ACCESS_LEVELS)
        _check_enum(self.key_label, "responsibility_type",
                    self.responsibility_type, ALL_RESPONSIBILITY_TYPES)
        if not MIN_PRIORITY_SCORE <= self.priority_score <= MAX_PRIORITY_SCORE:
            raise ValueError(
                f"[{self.key_label}] priority_score {self.priority_score} outside "
                f"{MIN_PRIORITY_SCORE}..{MAX_PRIORITY_SCORE}"
            )

    @property
    def key(self) -> tuple[str, str | None, str]:
        return (self.persona_id, self.sub_persona_id, self.section_id)

    @property
    def key_label(self) -> str:
        return f"{self.persona_id}/{self.sub_persona_id or '*'}/{self.section_id}"

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> PersonaSectionMapping:
        return cls(
            persona_id=raw["personaId"],
            sub_persona_id=raw.get("subPersonaId"),
            section_id=raw["sectionId"],
            access_level=raw.get("accessLevel", "primary"),
            responsibility_type=raw.get("responsibilityType", "owner"),
            can_edit=bool(raw.get("canEdit", False)),
            can_approve=bool(raw.get("canApprove", False)),
            can_review=bool(raw.get("canReview", True)),
            is_required=bool(raw.get("isRequired", True)),
            priority_score=int(raw.get("priorityScore", MIN_PRIORITY_SCORE)),
        )


# ── Required raw fields per catalog entity ────────────────────────
REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "persona":             ("id", "name"),
    "sub_persona":         ("id", "personaId", "name", "expertiseLevel"),
    "therapeutic_area":    ("id", "name", "complexity", "overlayPoints"),
    "ai_model_type":       ("id", "name", "complexity", "complexityPoints"),
    "deployment_scenario": ("id", "name", "complexity", "complexityPoints"),
    "section":             ("id", "sectionNumber", "title", "basePoints",
                            "isCriticalBlocker", "sectionType"),
    "question":            ("id", "sectionId", "text", "type", "points", "category"),
    "mapping":             ("personaId", "sectionId"),
}
