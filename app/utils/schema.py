"""
JSON schema helpers for provider-constrained output.
"""
from typing import Any, Dict, Type

from pydantic import BaseModel

_REF_PREFIX = "#/$defs/"


def _inline(node: Any, defs: Dict[str, Any]) -> Any:
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith(_REF_PREFIX):
            target = _inline(defs[ref[len(_REF_PREFIX):]], defs)
            siblings = {k: _inline(v, defs) for k, v in node.items() if k != "$ref"}
            return {**target, **siblings}
        return {k: _inline(v, defs) for k, v in node.items() if k != "$defs"}
    if isinstance(node, list):
        return [_inline(item, defs) for item in node]
    return node


def response_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """Return ``model``'s JSON schema with local ``$ref``s inlined.

    Recursive models are not supported.
    """
    schema = model.model_json_schema()
    return _inline(schema, schema.get("$defs", {}))
