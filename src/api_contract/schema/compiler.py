"""Schema compiler.

One recursive descent over a schema node yields both the validator and the
OpenAPI fragment, so the two can never describe different shapes.
"""

import copy
import threading
from typing import Any, Callable, NamedTuple

from api_contract.errors import ConfigurationError
from api_contract.schema import constraints
from api_contract.schema.base import ArrayShape, ObjectShape, Scalar, SchemaNode, SchemaRef
from api_contract.schema.constraints import TYPE_CHECKS, TYPE_LABELS, ConstraintKind
from api_contract.schema.result import ValidationResult, Violation

REF_PREFIX = "#/components/schemas/"
MAX_REF_DEPTH = 64

Check = Callable[[Any, str], tuple[Any, list[Violation]]]


class Validator:
    """Checks a payload against one compiled schema. Stateless and thread-safe."""

    def __init__(self, check: Check):
        self._check = check

    def check(self, value: Any, path: str = "") -> tuple[Any, list[Violation]]:
        """Return ``(normalized_value, violations)`` with paths relative to ``path``."""
        return self._check(value, path)

    def validate(self, payload: Any) -> ValidationResult:
        value, violations = self._check(payload, "")
        if violations:
            return ValidationResult(ok=False, errors=violations)
        return ValidationResult(ok=True, value=value)

    __call__ = validate


Resolver = Callable[[str], Validator]

_ref_depth = threading.local()


class CompiledSchema(NamedTuple):
    validator: Validator
    fragment: dict
    references: frozenset[str]


def ref_pointer(name: str) -> str:
    return f"{REF_PREFIX}{name}"


def compile_schema(node: SchemaNode, resolve: Resolver | None = None) -> CompiledSchema:
    """Compile ``node`` into a validator and its OpenAPI fragment.

    Args:
        node: The schema to compile.
        resolve: Looks up the validator of a named schema. Called lazily at
            validation time, so references may point at schemas registered later.

    Raises:
        ConfigurationError: if the node contains a reference and no resolver is
            given, or a field default does not satisfy its own schema.
    """
    references: set[str] = set()
    check, fragment = _compile(node, resolve, references)
    return CompiledSchema(Validator(check), fragment, frozenset(references))


def _compile(node: SchemaNode, resolve: Resolver | None, references: set[str]) -> tuple[Check, dict]:
    if isinstance(node, Scalar):
        return _compile_scalar(node)
    if isinstance(node, ObjectShape):
        return _compile_object(node, resolve, references)
    if isinstance(node, ArrayShape):
        return _compile_array(node, resolve, references)
    if isinstance(node, SchemaRef):
        return _compile_ref(node, resolve, references)
    raise ConfigurationError(f"Cannot compile {type(node).__name__}")


def _compile_scalar(node: Scalar) -> tuple[Check, dict]:
    fragment: dict = {"type": node.type}
    for c in node.constraints:
        fragment.update(constraints.describe(c))
    if node.description:
        fragment["description"] = node.description

    integral = any(c.kind is ConstraintKind.INTEGER for c in node.constraints)

    def check(value: Any, path: str) -> tuple[Any, list[Violation]]:
        if not TYPE_CHECKS[node.type](value):
            return value, [_type_violation(path, node.type)]
        violations = []
        for c in node.constraints:
            message = constraints.check(c, value)
            if message:
                violations.append(_violation(path, c.kind.value, message))
        if integral and not violations and isinstance(value, float):
            value = int(value)
        return value, violations

    return check, fragment


def _compile_object(node: ObjectShape, resolve: Resolver | None, references: set[str]) -> tuple[Check, dict]:
    members = []
    properties = {}
    for name, field in node.fields.items():
        field_check, field_fragment = _compile(field.node, resolve, references)
        if field.has_default:
            _, errors = field_check(copy.deepcopy(field.default), name)
            if errors:
                raise ConfigurationError(
                    f"Default for field '{name}' is invalid: {errors[0].message}"
                )
            field_fragment["default"] = copy.deepcopy(field.default)
        properties[name] = field_fragment
        members.append((name, field, field_check))

    fragment: dict = {"type": "object", "properties": properties}
    required_names = node.required_names()
    if required_names:
        fragment["required"] = required_names
    if node.description:
        fragment["description"] = node.description

    def check(value: Any, path: str) -> tuple[Any, list[Violation]]:
        if not isinstance(value, dict):
            return value, [_type_violation(path, "object")]
        out = dict(value)
        violations = []
        for name, field, field_check in members:
            field_path = _join(path, name)
            if name not in value:
                if field.required:
                    violations.append(
                        _violation(field_path, ConstraintKind.REQUIRED.value, "is required")
                    )
                elif field.has_default:
                    out[name] = copy.deepcopy(field.default)
                continue
            out[name], found = field_check(value[name], field_path)
            violations.extend(found)
        return out, violations

    return check, fragment


def _compile_array(node: ArrayShape, resolve: Resolver | None, references: set[str]) -> tuple[Check, dict]:
    item_check, item_fragment = _compile(node.items, resolve, references)
    fragment: dict = {"type": "array", "items": item_fragment}
    for c in node.constraints:
        fragment.update(constraints.describe(c))
    if node.description:
        fragment["description"] = node.description

    def check(value: Any, path: str) -> tuple[Any, list[Violation]]:
        if not isinstance(value, list):
            return value, [_type_violation(path, "array")]
        violations = []
        for c in node.constraints:
            message = constraints.check(c, value)
            if message:
                violations.append(_violation(path, c.kind.value, message))
        out = []
        for index, item in enumerate(value):
            normalized, found = item_check(item, f"{path}[{index}]")
            out.append(normalized)
            violations.extend(found)
        return out, violations

    return check, fragment


def _compile_ref(node: SchemaRef, resolve: Resolver | None, references: set[str]) -> tuple[Check, dict]:
    if resolve is None:
        raise ConfigurationError(
            f"Reference to '{node.name}' can only be compiled inside a schema registry"
        )
    references.add(node.name)
    name = node.name

    def check(value: Any, path: str) -> tuple[Any, list[Violation]]:
        depth = getattr(_ref_depth, "value", 0)
        if depth >= MAX_REF_DEPTH:
            return value, [_violation(
                path, ConstraintKind.NESTING_DEPTH.value,
                f"nests more than {MAX_REF_DEPTH} references deep",
            )]
        _ref_depth.value = depth + 1
        try:
            return resolve(name).check(value, path)
        finally:
            _ref_depth.value = depth

    return check, {"$ref": ref_pointer(name)}


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


def _violation(path: str, kind: str, message: str) -> Violation:
    label = f'"{path}"' if path else "value"
    return Violation(path=path, constraint_kind=kind, message=f"{label} {message}")


def _type_violation(path: str, type_name: str) -> Violation:
    return _violation(path, ConstraintKind.TYPE.value, f"must be {TYPE_LABELS[type_name]}")
