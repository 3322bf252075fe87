# engine/errors.py — Typed failures raised while composing an assessment.
"""Engine error hierarchy.

Every failure the composition engine reports is an ``EngineError``
subclass carrying the offending identifier, so callers can render a
precise message without parsing strings.

Required identifiers (persona, sub-persona, therapeutic area) are
fatal.  Optional multi-select identifiers (model types, deployment
scenarios) are never raised: the calculator records them as
``UnknownCatalogReferenceError`` instances in ``skipped_references``.
"""
from __future__ import annotations


class EngineError(Exception):
    """Base class for every assessment-composition failure."""

    code: str = "engine_error"

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": str(self)}


class UnknownPersonaError(EngineError):
    code = "unknown_persona"

    def __init__(self, persona_id: str) -> None:
        self.persona_id = persona_id
        super().__init__(f"Unknown persona: {persona_id!r}")


class UnknownSubPersonaError(EngineError):
    """Sub-persona is missing from the catalog or owned by another persona."""

    code = "unknown_sub_persona"

    def __init__(self, sub_persona_id: str, persona_id: str) -> None:
        self.sub_persona_id = sub_persona_id
        self.persona_id = persona_id
        super().__init__(
            f"Sub-persona {sub_persona_id!r} does not belong to persona {persona_id!r}"
        )


class UnknownCatalogReferenceError(EngineError):
    code = "unknown_catalog_reference"

    def __init__(self, kind: str, reference_id: str) -> None:
        self.kind = kind
        self.reference_id = reference_id
        super().__init__(f"Unknown {kind}: {reference_id!r}")

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "kind": self.kind, "id": self.reference_id,
                "message": str(self)}


class EmptyConfigurationError(EngineError):
    """A non-admin configuration is missing a required selection."""

    code = "empty_configuration"

    def __init__(self, missing: str) -> None:
        self.missing = missing
        super().__init__(f"Assessment configuration is missing {missing}")
