"""Constraint kinds, their factories, and the rules that check and describe them.

Every kind has exactly one rule. The rule's ``check`` is what the validator
runs and its ``describe`` is what ends up in the OpenAPI fragment, so the two
outputs of the compiler read from the same table.
"""

import math
import re
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, NamedTuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict

from api_contract.errors import ConfigurationError


class ConstraintKind(str, Enum):
    REQUIRED = "required"
    TYPE = "type"
    ENUM = "enum-membership"
    POSITIVE = "numeric-positivity"
    INTEGER = "numeric-integer"
    MINIMUM = "numeric-minimum"
    MAXIMUM = "numeric-maximum"
    MIN_LENGTH = "string-min-length"
    MAX_LENGTH = "string-max-length"
    PATTERN = "string-pattern"
    FORMAT = "string-format"
    MIN_ITEMS = "array-min-items"
    MAX_ITEMS = "array-max-items"
    NESTING_DEPTH = "nesting-depth"


class Constraint(BaseModel):
    """A single rule attached to a node: a kind plus its parameters."""

    model_config = ConfigDict(frozen=True)

    kind: ConstraintKind
    params: dict[str, Any] = {}


# --- runtime type checks -------------------------------------------------------


def is_number(value: Any) -> bool:
    """True for ints of any size and finite floats. Booleans are not numbers."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def is_integral(value: Any) -> bool:
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "number": is_number,
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, list),
    "object": lambda v: isinstance(v, dict),
}

TYPE_LABELS = {
    "string": "a string",
    "number": "a number",
    "boolean": "a boolean",
    "array": "an array",
    "object": "an object",
}


# --- string formats ------------------------------------------------------------

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _is_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _is_datetime(value: str) -> bool:
    if "T" not in value.upper():
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00").replace("z", "+00:00"))
    except ValueError:
        return False
    return True


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _is_uri(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


FORMATS: dict[str, Callable[[str], bool]] = {
    "email": lambda v: bool(_EMAIL.match(v)),
    "date": _is_date,
    "date-time": _is_datetime,
    "uuid": _is_uuid,
    "uri": _is_uri,
}


# --- factories -----------------------------------------------------------------


def enum_of(*values: Any) -> Constraint:
    """Value must be one of ``values``."""
    if not values:
        raise ConfigurationError("enum_of() needs at least one value")
    if len(set(map(repr, values))) != len(values):
        raise ConfigurationError(f"enum_of() has duplicate values: {list(values)}")
    return Constraint(kind=ConstraintKind.ENUM, params={"values": list(values)})


def positive() -> Constraint:
    return Constraint(kind=ConstraintKind.POSITIVE)


def integer() -> Constraint:
    return Constraint(kind=ConstraintKind.INTEGER)


def minimum(value: float) -> Constraint:
    _require_number("minimum", value)
    return Constraint(kind=ConstraintKind.MINIMUM, params={"value": value})


def maximum(value: float) -> Constraint:
    _require_number("maximum", value)
    return Constraint(kind=ConstraintKind.MAXIMUM, params={"value": value})


def min_length(value: int) -> Constraint:
    _require_count("min_length", value)
    return Constraint(kind=ConstraintKind.MIN_LENGTH, params={"value": value})


def max_length(value: int) -> Constraint:
    _require_count("max_length", value)
    return Constraint(kind=ConstraintKind.MAX_LENGTH, params={"value": value})


def pattern(regex: str) -> Constraint:
    try:
        re.compile(regex)
    except re.error as e:
        raise ConfigurationError(f"pattern() got an invalid regex {regex!r}: {e}") from e
    return Constraint(kind=ConstraintKind.PATTERN, params={"regex": regex})


def string_format(name: str) -> Constraint:
    if name not in FORMATS:
        raise ConfigurationError(
            f"Unknown string format '{name}', expected one of {sorted(FORMATS)}"
        )
    return Constraint(kind=ConstraintKind.FORMAT, params={"name": name})


def min_items(value: int) -> Constraint:
    _require_count("min_items", value)
    return Constraint(kind=ConstraintKind.MIN_ITEMS, params={"value": value})


def max_items(value: int) -> Constraint:
    _require_count("max_items", value)
    return Constraint(kind=ConstraintKind.MAX_ITEMS, params={"value": value})


def _require_number(factory: str, value: Any) -> None:
    if not is_number(value):
        raise ConfigurationError(f"{factory}() needs a finite number, got {value!r}")


def _require_count(factory: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(f"{factory}() needs a non-negative integer, got {value!r}")


# --- rules ---------------------------------------------------------------------


class _Rule(NamedTuple):
    applies_to: tuple[str, ...]
    check: Callable[[Any, dict], str | None]
    describe: Callable[[dict], dict]


def _fails(ok: bool, message: str) -> str | None:
    return None if ok else message


_RULES: dict[ConstraintKind, _Rule] = {
    ConstraintKind.ENUM: _Rule(
        ("string", "number", "boolean"),
        lambda v, p: _fails(v in p["values"], f"must be one of {p['values']}"),
        lambda p: {"enum": list(p["values"])},
    ),
    ConstraintKind.POSITIVE: _Rule(
        ("number",),
        lambda v, p: _fails(v > 0, "must be a positive number"),
        lambda p: {"minimum": 0, "exclusiveMinimum": True},
    ),
    ConstraintKind.INTEGER: _Rule(
        ("number",),
        lambda v, p: _fails(is_integral(v), "must be an integer"),
        lambda p: {"type": "integer"},
    ),
    ConstraintKind.MINIMUM: _Rule(
        ("number",),
        lambda v, p: _fails(v >= p["value"], f"must be greater than or equal to {p['value']}"),
        lambda p: {"minimum": p["value"]},
    ),
    ConstraintKind.MAXIMUM: _Rule(
        ("number",),
        lambda v, p: _fails(v <= p["value"], f"must be less than or equal to {p['value']}"),
        lambda p: {"maximum": p["value"]},
    ),
    ConstraintKind.MIN_LENGTH: _Rule(
        ("string",),
        lambda v, p: _fails(len(v) >= p["value"], f"length must be at least {p['value']} characters"),
        lambda p: {"minLength": p["value"]},
    ),
    ConstraintKind.MAX_LENGTH: _Rule(
        ("string",),
        lambda v, p: _fails(len(v) <= p["value"], f"length must be at most {p['value']} characters"),
        lambda p: {"maxLength": p["value"]},
    ),
    ConstraintKind.PATTERN: _Rule(
        ("string",),
        lambda v, p: _fails(re.search(p["regex"], v) is not None, f"must match pattern {p['regex']}"),
        lambda p: {"pattern": p["regex"]},
    ),
    ConstraintKind.FORMAT: _Rule(
        ("string",),
        lambda v, p: _fails(FORMATS[p["name"]](v), f"must be a valid {p['name']}"),
        lambda p: {"format": p["name"]},
    ),
    ConstraintKind.MIN_ITEMS: _Rule(
        ("array",),
        lambda v, p: _fails(len(v) >= p["value"], f"must contain at least {p['value']} items"),
        lambda p: {"minItems": p["value"]},
    ),
    ConstraintKind.MAX_ITEMS: _Rule(
        ("array",),
        lambda v, p: _fails(len(v) <= p["value"], f"must contain at most {p['value']} items"),
        lambda p: {"maxItems": p["value"]},
    ),
}

_BOUNDS = [
    (ConstraintKind.MINIMUM, ConstraintKind.MAXIMUM),
    (ConstraintKind.MIN_LENGTH, ConstraintKind.MAX_LENGTH),
    (ConstraintKind.MIN_ITEMS, ConstraintKind.MAX_ITEMS),
]


def check(constraint: Constraint, value: Any) -> str | None:
    """Return a violation message, or None when ``value`` satisfies the constraint."""
    return _RULES[constraint.kind].check(value, constraint.params)


def describe(constraint: Constraint) -> dict:
    """Return the OpenAPI keywords documenting the constraint."""
    return _RULES[constraint.kind].describe(constraint.params)


def check_constraint_set(type_name: str, constraints: tuple[Constraint, ...]) -> None:
    """Reject constraint combinations that cannot be satisfied or documented.

    Raises:
        ConfigurationError: on inapplicable, duplicate or contradictory constraints.
    """
    by_kind: dict[ConstraintKind, Constraint] = {}
    for c in constraints:
        rule = _RULES.get(c.kind)
        if rule is None or type_name not in rule.applies_to:
            raise ConfigurationError(f"Constraint '{c.kind.value}' does not apply to {type_name}")
        if c.kind in by_kind:
            raise ConfigurationError(f"Constraint '{c.kind.value}' given more than once")
        by_kind[c.kind] = c

    if ConstraintKind.POSITIVE in by_kind and ConstraintKind.MINIMUM in by_kind:
        raise ConfigurationError("positive() and minimum() cannot be combined")

    for low, high in _BOUNDS:
        if low in by_kind and high in by_kind:
            lo, hi = by_kind[low].params["value"], by_kind[high].params["value"]
            if lo > hi:
                raise ConfigurationError(
                    f"'{low.value}' ({lo}) is greater than '{high.value}' ({hi})"
                )

    enum = by_kind.get(ConstraintKind.ENUM)
    if enum is None:
        return
    for value in enum.params["values"]:
        if not TYPE_CHECKS[type_name](value):
            raise ConfigurationError(
                f"Enum value {value!r} is not {TYPE_LABELS[type_name]}"
            )
        for other in constraints:
            if other.kind is not ConstraintKind.ENUM and check(other, value) is not None:
                raise ConfigurationError(
                    f"Enum value {value!r} violates '{other.kind.value}'"
                )
