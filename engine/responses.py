# engine/responses.py — Typed answers to assessment questions.
"""Assessment responses.

A response only means something next to its question.  It *answers* the
question when it is marked complete and its value has the shape the
question type asks for:

  * boolean    — a real ``bool``
  * scale_1_5  — an ``int`` (not ``bool``) inside ``question.scale``
  * free_text  — a non-blank ``str``

It *passes* when it answers the question and, for booleans, is ``True``;
for scales, is ``>= SCALE_PASS_THRESHOLD``.  Any other value (``"false"``,
``"1"``, ``99`` on a 1..5 scale) is neither answered nor passing.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from schemas.taxonomy import (
    ALL_COMPLETION_STATUSES,
    SCALE_PASS_THRESHOLD,
    Question,
)

ResponseValue = bool | int | str | None


@dataclass(frozen=True)
class AssessmentResponse:
    question_id: str
    value: ResponseValue = None
    completion_status: str = "complete"           # CompletionStatus literal
    evidence_documents: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.completion_status not in ALL_COMPLETION_STATUSES:
            raise ValueError(
                f"[{self.question_id}] Invalid completion_status: {self.completion_status!r}"
            )

    def answers(self, question: Question) -> bool:
        """True when the value is a well-formed answer for *question*."""
        if self.completion_status != "complete":
            return False
        value = self.value
        if question.question_type == "boolean":
            return isinstance(value, bool)
        if question.question_type == "scale_1_5":
            if isinstance(value, bool) or not isinstance(value, int):
                return False
            scale = question.scale
            return scale["min"] <= value <= scale["max"]
        return isinstance(value, str) and value.strip() != ""

    def passes(self, question: Question) -> bool:
        if not self.answers(question):
            return False
        if question.question_type == "boolean":
            return self.value is True
        if question.question_type == "scale_1_5":
            return self.value >= SCALE_PASS_THRESHOLD
        return True

    def scale_value(self, question: Question) -> int | None:
        """Integer value of a well-formed scale answer, else ``None``."""
        if question.question_type != "scale_1_5" or not self.answers(question):
            return None
        return self.value

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> AssessmentResponse:
        return cls(
            question_id=raw["questionId"],
            value=raw.get("value"),
            completion_status=raw.get("completionStatus", "complete"),
            evidence_documents=tuple(raw.get("evidenceDocuments", [])),
        )


def index_responses(
    responses: Mapping[str, AssessmentResponse] | Iterable[AssessmentResponse] | None,
) -> dict[str, AssessmentResponse]:
    """question_id → response.  Later entries win for duplicate ids."""
    if responses is None:
        return {}
    if isinstance(responses, Mapping):
        return dict(responses)
    return {r.question_id: r for r in responses}
