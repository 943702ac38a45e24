"""Validation results.

Validators never raise on bad payloads; they return one of these.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Violation(BaseModel):
    """One violated constraint at one location in the payload."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str  # "" for the payload root, else "owner.tags[0]"
    constraint_kind: str = Field(alias="constraintKind")
    message: str


class ValidationResult(BaseModel):
    """Either the normalized value or the full ordered list of violations."""

    ok: bool
    value: Any = None
    errors: list[Violation] = []

    def to_dict(self) -> dict:
        """Convert to the wire shape ``{ok, value}`` or ``{ok, errors}``."""
        if self.ok:
            return {"ok": True, "value": self.value}
        return {"ok": False, "errors": [v.model_dump(by_alias=True) for v in self.errors]}
