#!/usr/bin/env python3
"""Print the assessment preview for a persona / overlay configuration.

Example:
    python scripts/preview_assessment.py --persona data-science \
        --sub-persona data-head --therapeutic-area oncology \
        --ai-model-types generative-ai,agentic-ai
"""
import argparse
import json
import logging

from dotenv import load_dotenv
from pydantic import ValidationError

from catalog_packs.store import default_store
from engine.configuration import PreviewRequest, has_errors, validate_configuration
from engine.errors import EngineError
from engine.preview import compose_preview


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compose a deterministic assessment preview as JSON."
    )
    parser.add_argument("--persona", required=True, help="Persona id (e.g. 'executive')")
    parser.add_argument("--sub-persona", default=None, help="Sub-persona id")
    parser.add_argument("--therapeutic-area", default=None, help="Therapeutic area id")
    parser.add_argument("--company", default=None, help="Company id")
    parser.add_argument("--ai-model-types", default="", help="Comma-separated AI model type ids")
    parser.add_argument("--deployment-scenarios", default="",
                        help="Comma-separated deployment scenario ids")
    parser.add_argument("--summary", action="store_true",
                        help="Omit per-question detail from the output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def _emit(payload: dict) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def main() -> int:
    load_dotenv()
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        request = PreviewRequest.from_query({
            "personaId": args.persona,
            "subPersonaId": args.sub_persona,
            "therapeuticAreaId": args.therapeutic_area,
            "companyId": args.company,
            "aiModelTypes": args.ai_model_types,
            "deploymentScenarios": args.deployment_scenarios,
        })
    except ValidationError as exc:
        _emit({"ok": False, "error": {"code": "invalid_request", "message": str(exc)}})
        return 1

    config = request.to_configuration()
    catalog = default_store().snapshot()
    issues = validate_configuration(catalog, config)
    if has_errors(issues):
        _emit({"ok": False, "issues": [i.to_dict() for i in issues]})
        return 1

    try:
        preview = compose_preview(config, catalog)
    except EngineError as exc:
        _emit({"ok": False, "error": exc.to_dict()})
        return 1

    payload = preview.to_dict()
    if args.summary:
        for section in payload["sections"]:
            section.pop("questions", None)
    _emit({"ok": True, "warnings": [i.to_dict() for i in issues], "preview": payload})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
