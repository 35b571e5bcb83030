from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type

from pydantic import BaseModel

from forms_demo.policy.policy import Permission
from forms_demo.runtime.storage.forms_db import FormsDB

AbilityExecutor = Callable[[FormsDB, Dict[str, Any]], Dict[str, Any]]


def _clean_schema(node: Any) -> Any:
    # Drop pydantic's generated titles and null defaults; Optional[X] is advertised as plain X.
    if isinstance(node, dict):
        any_of = node.get("anyOf")
        if isinstance(any_of, list):
            non_null = [s for s in any_of if s != {"type": "null"}]
            if len(non_null) == 1 and len(non_null) < len(any_of):
                merged = {k: v for k, v in node.items() if k != "anyOf"}
                merged.update(non_null[0])
                return _clean_schema(merged)
        out: Dict[str, Any] = {}
        for k, v in node.items():
            if k == "title" and isinstance(v, str):
                continue
            if k == "default" and v is None:
                continue
            out[k] = _clean_schema(v)
        return out
    if isinstance(node, list):
        return [_clean_schema(v) for v in node]
    return node


@dataclass(frozen=True)
class AbilityCategory:
    slug: str
    label: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {"slug": self.slug, "label": self.label, "description": self.description}


@dataclass(frozen=True)
class AbilityDefinition:
    """
    One operation, described once and consumed by both the abilities endpoint
    and the legacy routes.

    name: ability name (e.g. "forms-demo/submit-form")
    legacy_route: path segment under the legacy namespace (e.g. "submit-form")
    legacy_executor: optional override for the legacy route; defaults to executor
    """

    name: str
    label: str
    description: str
    category: str
    input_model: Type[BaseModel]
    output_schema: Dict[str, Any]
    permission: Permission
    executor: AbilityExecutor
    legacy_route: str
    legacy_executor: Optional[AbilityExecutor] = None

    @property
    def input_schema(self) -> Dict[str, Any]:
        return _clean_schema(self.input_model.model_json_schema())

    def run(self, db: FormsDB, args: Dict[str, Any]) -> Dict[str, Any]:
        return self.executor(db, args)

    def run_legacy(self, db: FormsDB, args: Dict[str, Any]) -> Dict[str, Any]:
        return (self.legacy_executor or self.executor)(db, args)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "label": self.label,
            "description": self.description,
            "category": self.category,
            "input_schema": self.input_schema,
            "output_schema": self.output_schema,
        }
