"""Named schema registry.

Write-once during the build phase, read-only after ``freeze()``.
"""

import copy
import logging

from api_contract.errors import ConfigurationError, RegistryFrozenError, UnresolvedSchemaError
from api_contract.schema.base import COMPONENT_NAME, SchemaNode
from api_contract.schema.compiler import CompiledSchema, Validator, compile_schema

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """Maps schema names to their compiled validator and OpenAPI fragment."""

    def __init__(self):
        self._schemas: dict[str, CompiledSchema] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, name: str, node: SchemaNode) -> Validator:
        """Compile ``node``, store it under ``name`` and return its validator.

        Raises:
            ConfigurationError: on an invalid or duplicate name, or a node that
                fails to compile.
            RegistryFrozenError: once the registry is frozen.
        """
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register schema '{name}' after freeze")
        if not COMPONENT_NAME.match(name):
            raise ConfigurationError(f"Invalid schema name '{name}'")
        if name in self._schemas:
            raise ConfigurationError(f"Schema '{name}' is already registered")

        compiled = compile_schema(node, resolve=self._resolve)
        self._schemas[name] = compiled
        logger.debug("Registered schema %s (refs: %s)", name, sorted(compiled.references))
        return compiled.validator

    def __contains__(self, name: str) -> bool:
        return name in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def names(self) -> list[str]:
        return list(self._schemas)

    def get(self, name: str) -> CompiledSchema:
        compiled = self._schemas.get(name)
        if compiled is None:
            raise UnresolvedSchemaError(name)
        return compiled

    def validator(self, name: str) -> Validator:
        return self.get(name).validator

    def fragment(self, name: str) -> dict:
        """Return a copy of the fragment so callers cannot alter the registry."""
        return copy.deepcopy(self.get(name).fragment)

    def components(self) -> dict[str, dict]:
        """All fragments keyed by name, in registration order."""
        return {name: copy.deepcopy(c.fragment) for name, c in self._schemas.items()}

    def check_references(self) -> None:
        """Fail on the first reference that points at an unregistered schema.

        Raises:
            UnresolvedSchemaError: naming the missing schema and its referrer.
        """
        for name, compiled in self._schemas.items():
            for target in sorted(compiled.references):
                if target not in self._schemas:
                    raise UnresolvedSchemaError(target, f"schema '{name}'")

    def freeze(self) -> None:
        """Verify references and end the build phase. Safe to call twice."""
        if self._frozen:
            return
        self.check_references()
        self._frozen = True
        logger.debug("Froze schema registry with %d schemas", len(self._schemas))

    def _resolve(self, name: str) -> Validator:
        compiled = self._schemas.get(name)
        if compiled is None:
            raise UnresolvedSchemaError(name)
        return compiled.validator
