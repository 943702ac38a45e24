"""Request-time validation.

Runs the validator bound to a route and hands back a ValidationResult. Choosing
an HTTP status for a rejected payload is left to the caller.
"""

import logging
import re
from typing import Any

from api_contract.context import ContractSnapshot
from api_contract.registry.routes import RouteDescriptor
from api_contract.schema.compiler import compile_schema
from api_contract.schema.constraints import ConstraintKind
from api_contract.schema.result import ValidationResult, Violation

logger = logging.getLogger(__name__)

_TRUE = {"true", "1"}
_FALSE = {"false", "0"}
_INTEGER = re.compile(r"-?[0-9]+")
_DECIMAL = re.compile(r"-?[0-9]+\.[0-9]+")


class ValidationPipeline:
    """Gates handlers on a frozen contract."""

    def __init__(self, snapshot: ContractSnapshot):
        self.snapshot = snapshot
        self._param_validators = {
            route.key: {
                p.name: (p.node.type, compile_schema(p.node).validator)
                for p in route.parameters()
            }
            for route in snapshot.routes()
        }

    def validate_request(self, route: RouteDescriptor | tuple[str, str], payload: Any) -> ValidationResult:
        """Validate an inbound body. Routes without a request schema pass it through."""
        route = self._route(route)
        if route.request_schema is None:
            return ValidationResult(ok=True, value=payload)
        return self._run(route, route.request_schema, payload, "request")

    def validate_response(self, route: RouteDescriptor | tuple[str, str], payload: Any) -> ValidationResult:
        """Validate an outbound body. Routes without a response schema pass it through."""
        route = self._route(route)
        if route.response_schema is None:
            return ValidationResult(ok=True, value=payload)
        return self._run(route, route.response_schema, payload, "response")

    def validate_path_params(self, route: RouteDescriptor | tuple[str, str], raw: dict[str, str]) -> ValidationResult:
        """Validate path segments captured by the router.

        Segments are always text. Number and boolean parameters are parsed
        explicitly first; text that does not parse is reported as a type
        violation by the parameter's validator.
        """
        route = self._route(route)
        params = self._param_validators[route.key]
        values = {}
        errors = []
        for name, (type_name, validator) in params.items():
            if name not in raw:
                errors.append(Violation(
                    path=name,
                    constraint_kind=ConstraintKind.REQUIRED.value,
                    message=f'"{name}" is required',
                ))
                continue
            value, found = validator.check(_parse_segment(type_name, raw[name]), name)
            values[name] = value
            errors.extend(found)
        if errors:
            logger.debug("Path parameters for %s rejected: %d violation(s)", route, len(errors))
            return ValidationResult(ok=False, errors=errors)
        return ValidationResult(ok=True, value=values)

    def _route(self, route: RouteDescriptor | tuple[str, str]) -> RouteDescriptor:
        if isinstance(route, RouteDescriptor):
            return route
        method, path = route
        return self.snapshot.route(method, path)

    def _run(self, route: RouteDescriptor, schema_name: str, payload: Any, direction: str) -> ValidationResult:
        result = self.snapshot.validator(schema_name).validate(payload)
        if not result.ok:
            logger.debug(
                "%s payload for %s rejected by %s: %d violation(s)",
                direction.capitalize(), route, schema_name, len(result.errors),
            )
        return result


def _parse_segment(type_name: str, text: str) -> Any:
    if type_name == "string":
        return text
    if type_name == "boolean":
        lowered = text.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        return text
    # Plain ASCII decimals only. Exponents, underscores and padding stay text.
    try:
        if _INTEGER.fullmatch(text):
            return int(text)
        if _DECIMAL.fullmatch(text):
            return float(text)
    except ValueError:
        pass
    return text
