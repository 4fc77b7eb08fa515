from __future__ import annotations

from typing import Any, Dict, List

_NAMES: Dict[str, Any] = {
    "oneOf": [
        {"type": "string", "minLength": 1},
        {"type": "array", "items": {"type": "string", "minLength": 1}},
    ]
}

POLICY_DOCUMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "actionacl policy document",
    "type": "object",
    "required": ["actions"],
    "properties": {
        "actions": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "required": ["detach_to"],
                "properties": {
                    "rules": _NAMES,
                    "requires_role": _NAMES,
                    "allowed_role": _NAMES,
                    "detach_to": {"type": "string", "minLength": 1},
                },
                "anyOf": [
                    {"required": ["rules"]},
                    {"required": ["requires_role"]},
                    {"required": ["allowed_role"]},
                ],
            },
        }
    },
}


def validate_document(doc: Any) -> List[Dict[str, Any]]:
    """Validate *doc* against the policy document schema.

    Returns a list of ``{"message", "path"}`` dicts; empty when valid.
    Requires the optional ``jsonschema`` dependency.
    """
    try:
        from jsonschema import Draft202012Validator  # type: ignore[import-untyped]
    except Exception as e:  # pragma: no cover
        raise RuntimeError(
            "Schema validation requires 'jsonschema'. Install with extra: actionacl[validate]."
        ) from e

    validator = Draft202012Validator(POLICY_DOCUMENT_SCHEMA)
    errors = sorted(validator.iter_errors(doc), key=lambda e: [str(p) for p in e.absolute_path])
    return [
        {"message": e.message, "path": "/".join(str(p) for p in e.absolute_path)}
        for e in errors
    ]


__all__ = ["POLICY_DOCUMENT_SCHEMA", "validate_document"]
