from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from forms_demo.policy.policy import CallerContext
from forms_demo.runtime.abilities.definition import AbilityCategory, AbilityDefinition
from forms_demo.runtime.storage.forms_db import FormsDB

logger = logging.getLogger("forms_demo.abilities")


class AbilityError(Exception):
    """Rejected before the ability ran. Carries the HTTP status and error code for the response."""

    status_code = 400
    code = "ability_error"

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "data": {"status": self.status_code}}


class AbilityNotFound(AbilityError):
    status_code = 404
    code = "ability_not_found"


class AbilityPermissionDenied(AbilityError):
    status_code = 403
    code = "ability_invalid_permissions"


class AbilityInvalidInput(AbilityError):
    status_code = 400
    code = "ability_invalid_input"


def _format_validation_error(e: ValidationError) -> str:
    parts: List[str] = []
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc") or ()) or "input"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


class AbilityRegistry:
    def __init__(self, *, db: FormsDB, abilities: List[AbilityDefinition], categories: List[AbilityCategory]):
        self.db = db
        self._categories = {c.slug: c for c in categories}
        self._abilities: Dict[str, AbilityDefinition] = {}
        for a in abilities:
            if a.name in self._abilities:
                raise ValueError(f"Ability already registered: {a.name}")
            if a.category not in self._categories:
                raise ValueError(f"Unknown ability category '{a.category}' for {a.name}")
            self._abilities[a.name] = a

    def get(self, name: str) -> AbilityDefinition:
        if name not in self._abilities:
            raise AbilityNotFound(f"Ability not found: {name}")
        return self._abilities[name]

    def list(self, *, category: Optional[str] = None) -> List[AbilityDefinition]:
        return [a for a in self._abilities.values() if category is None or a.category == category]

    def categories(self) -> List[AbilityCategory]:
        return list(self._categories.values())

    def check_permission(self, ability: AbilityDefinition, caller: CallerContext) -> None:
        if not ability.permission(caller):
            logger.info("permission denied: %s (tier=%s)", ability.name, caller.tier)
            raise AbilityPermissionDenied(f"Ability \"{ability.name}\" does not have necessary permission.")

    def validate_input(self, ability: AbilityDefinition, payload: Any) -> Dict[str, Any]:
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise AbilityInvalidInput(f"Ability \"{ability.name}\" has invalid input: expected an object.")
        try:
            model = ability.input_model.model_validate(payload)
        except ValidationError as e:
            raise AbilityInvalidInput(
                f"Ability \"{ability.name}\" has invalid input. Reason: {_format_validation_error(e)}"
            ) from e
        return model.model_dump(exclude_none=True)

    def execute(self, name: str, payload: Any, caller: CallerContext) -> Dict[str, Any]:
        """
        Run an ability by name: unknown name, denied permission and invalid input
        raise AbilityError subclasses; otherwise the executor's result is returned as-is.
        """
        ability = self.get(name)
        self.check_permission(ability, caller)
        args = self.validate_input(ability, payload)
        return ability.run(self.db, args)
