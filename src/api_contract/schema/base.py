"""Schema node model.

A schema is a tree of Scalar, ObjectShape, ArrayShape and SchemaRef nodes.
Nodes are frozen pydantic models; composition builds new nodes and never
touches the base.
"""

import re
from typing import Any, Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict, model_validator

from api_contract.errors import ConfigurationError
from api_contract.schema.constraints import Constraint, check_constraint_set

COMPONENT_NAME = re.compile(r"^[A-Za-z0-9._-]+$")

_MISSING = object()


class Scalar(BaseModel):
    """A primitive value: string, number or boolean, plus its constraints."""

    model_config = ConfigDict(frozen=True)

    type: Literal["string", "number", "boolean"]
    constraints: tuple[Constraint, ...] = ()
    description: str = ""

    @model_validator(mode="after")
    def check_constraints(self) -> "Scalar":
        check_constraint_set(self.type, self.constraints)
        return self


class SchemaRef(BaseModel):
    """A pointer to a schema registered under ``name``."""

    model_config = ConfigDict(frozen=True)

    name: str

    @model_validator(mode="after")
    def check_name(self) -> "SchemaRef":
        if not COMPONENT_NAME.match(self.name):
            raise ConfigurationError(f"Invalid schema name '{self.name}'")
        return self


class Field(BaseModel):
    """An object member: its node, whether it must be present, and its default."""

    model_config = ConfigDict(frozen=True)

    node: "SchemaNode"
    required: bool = False
    default: Any = None

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set

    @model_validator(mode="after")
    def check_default(self) -> "Field":
        if self.has_default and self.required:
            raise ConfigurationError("A required field cannot have a default")
        if self.has_default and isinstance(self.node, SchemaRef):
            raise ConfigurationError(
                f"A reference to '{self.node.name}' cannot have a default"
            )
        return self


class ObjectShape(BaseModel):
    """An ordered mapping of field name to Field."""

    model_config = ConfigDict(frozen=True)

    fields: dict[str, Field] = {}
    description: str = ""

    @model_validator(mode="after")
    def check_names(self) -> "ObjectShape":
        for name in self.fields:
            if not name:
                raise ConfigurationError("Object field names cannot be empty")
        return self

    def required_names(self) -> list[str]:
        return [name for name, f in self.fields.items() if f.required]


class ArrayShape(BaseModel):
    """A list whose items all match ``items``."""

    model_config = ConfigDict(frozen=True)

    items: "SchemaNode"
    constraints: tuple[Constraint, ...] = ()
    description: str = ""

    @model_validator(mode="after")
    def check_constraints(self) -> "ArrayShape":
        check_constraint_set("array", self.constraints)
        return self


SchemaNode = Union[Scalar, ObjectShape, ArrayShape, SchemaRef]

Field.model_rebuild()
ObjectShape.model_rebuild()
ArrayShape.model_rebuild()


# --- builders ------------------------------------------------------------------


def string(*constraints: Constraint, description: str = "") -> Scalar:
    return Scalar(type="string", constraints=constraints, description=description)


def number(*constraints: Constraint, description: str = "") -> Scalar:
    return Scalar(type="number", constraints=constraints, description=description)


def boolean(*constraints: Constraint, description: str = "") -> Scalar:
    return Scalar(type="boolean", constraints=constraints, description=description)


def array(items: SchemaNode, *constraints: Constraint, description: str = "") -> ArrayShape:
    return ArrayShape(items=items, constraints=constraints, description=description)


def ref(name: str) -> SchemaRef:
    return SchemaRef(name=name)


def required(node: SchemaNode) -> Field:
    return Field(node=node, required=True)


def optional(node: SchemaNode, default: Any = _MISSING) -> Field:
    """An optional field. When ``default`` is given it fills in absent values."""
    if default is _MISSING:
        return Field(node=node)
    return Field(node=node, default=default)


def obj(fields: dict[str, SchemaNode | Field] | None = None, description: str = "") -> ObjectShape:
    """Build an object shape. Bare nodes become optional fields."""
    return ObjectShape(
        fields={name: _as_field(value) for name, value in (fields or {}).items()},
        description=description,
    )


# --- composition ---------------------------------------------------------------


def with_fields(base: ObjectShape, added: dict[str, SchemaNode | Field]) -> ObjectShape:
    """Return a new shape with ``added`` appended after the base fields.

    Raises:
        ConfigurationError: if ``base`` is not an object or a name already exists.
    """
    _require_object(base, "with_fields")
    clash = [name for name in added if name in base.fields]
    if clash:
        raise ConfigurationError(f"with_fields() would redefine existing fields {clash}")
    fields = dict(base.fields)
    for name, value in added.items():
        fields[name] = _as_field(value)
    return ObjectShape(fields=fields, description=base.description)


def omit_fields(base: ObjectShape, names: Iterable[str]) -> ObjectShape:
    """Return a new shape without ``names``, keeping the order of the rest.

    Raises:
        ConfigurationError: if ``base`` is not an object or a name does not exist.
    """
    _require_object(base, "omit_fields")
    if isinstance(names, str):
        names = [names]
    names = list(names)
    missing = [name for name in names if name not in base.fields]
    if missing:
        raise ConfigurationError(f"omit_fields() cannot remove unknown fields {missing}")
    fields = {name: f for name, f in base.fields.items() if name not in names}
    return ObjectShape(fields=fields, description=base.description)


def _as_field(value: SchemaNode | Field) -> Field:
    if isinstance(value, Field):
        return value
    return Field(node=value)


def _require_object(node: Any, op: str) -> None:
    if not isinstance(node, ObjectShape):
        raise ConfigurationError(f"{op}() needs an object shape, got {type(node).__name__}")
