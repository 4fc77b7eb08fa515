from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

from ..core.errors import ConfigError, PolicyDocumentError
from ..core.model import Policy
from ..core.policy import build_policy

logger = logging.getLogger("actionacl.policy.loader")

try:
    import yaml  # type: ignore[import-untyped]
except Exception:  # pragma: no cover
    yaml = None  # type: ignore[assignment]

_YAML_TYPES = ("application/yaml", "application/x-yaml", "text/yaml", "text/x-yaml")
_YAML_EXTS = (".yaml", ".yml")


def _detect_format(filename: Optional[str], content_type: Optional[str]) -> str:
    if content_type:
        ct = content_type.split(";", 1)[0].strip().lower()
        if ct in _YAML_TYPES:
            return "yaml"
        if ct == "application/json" or ct.endswith("+json"):
            return "json"
    if filename:
        ext = os.path.splitext(filename)[1].lower()
        if ext in _YAML_EXTS:
            return "yaml"
        if ext == ".json":
            return "json"
    return "json"


def parse_policy_text(
    text: str, *, filename: Optional[str] = None, content_type: Optional[str] = None
) -> Any:
    """Parse a JSON or YAML policy document.

    The format is taken from *content_type*, then the *filename* extension,
    and defaults to JSON. Decode errors propagate.
    """
    fmt = _detect_format(filename, content_type)
    if fmt == "yaml":
        if yaml is None:
            raise RuntimeError(
                "YAML policies require 'PyYAML'. Install with extra: actionacl[yaml]."
            )
        return yaml.safe_load(text)
    return json.loads(text)


def load_policies(doc: Any, *, validate_schema: bool = False) -> Dict[str, Policy]:
    """Build one validated Policy per action from a declarative document.

    Document shape::

        {"actions": {"edit": {"rules": ["assert_can_edit"],
                              "requires_role": ["editor"],
                              "allowed_role": ["admin", "writer"],
                              "detach_to": "denied"}}}

    Unknown keys are ignored. The first invalid action aborts loading.
    """
    if validate_schema:
        from .schema import validate_document

        errors = validate_document(doc)
        if errors:
            first = errors[0]
            raise PolicyDocumentError(
                f"invalid policy document at '{first['path']}': {first['message']}"
            )

    if not isinstance(doc, Mapping):
        raise PolicyDocumentError("policy document must be a mapping")
    actions = doc.get("actions")
    if not isinstance(actions, Mapping):
        raise PolicyDocumentError("policy document requires an 'actions' mapping")

    out: Dict[str, Policy] = {}
    for name, attrs in actions.items():
        if not isinstance(attrs, Mapping):
            raise PolicyDocumentError(f"action '{name}' must map to an object")
        try:
            out[str(name)] = build_policy(
                rules=attrs.get("rules"),
                requires=attrs.get("requires_role"),
                allowed=attrs.get("allowed_role"),
                detach_to=attrs.get("detach_to"),
                action=str(name),
            )
        except TypeError as e:
            raise PolicyDocumentError(f"action '{name}': {e}") from e
        except ConfigError:
            logger.error("actionacl: invalid policy for action %s", name)
            raise
    return out


def load_policies_file(path: str, *, validate_schema: bool = False) -> Dict[str, Policy]:
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return load_policies(parse_policy_text(text, filename=path), validate_schema=validate_schema)


__all__ = ["parse_policy_text", "load_policies", "load_policies_file"]
