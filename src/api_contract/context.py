"""Two-phase lifecycle: a BuildContext collects schemas and routes, then
``freeze()`` turns it into a read-only ContractSnapshot for serving.
"""

import copy
import logging

from api_contract.config import DocumentInfo
from api_contract.document.assembler import assemble_document, dump_document
from api_contract.registry.routes import RouteDescriptor, RouteRegistry
from api_contract.registry.schemas import SchemaRegistry
from api_contract.schema.base import SchemaNode
from api_contract.schema.compiler import Validator

logger = logging.getLogger(__name__)


class BuildContext:
    """Startup-time registration of schemas and routes.

    Usage:
        ctx = BuildContext(DocumentInfo(title="Petstore"))
        ctx.schema("Pet", pet_shape)
        ctx.route("GET", "/pet/{petId}", response_schema="Pet")
        snapshot = ctx.freeze()
    """

    def __init__(self, info: DocumentInfo | None = None):
        self.info = info or DocumentInfo()
        self.schemas = SchemaRegistry()
        self.routes = RouteRegistry()
        self._snapshot: "ContractSnapshot | None" = None

    def schema(self, name: str, node: SchemaNode) -> Validator:
        """Register a named schema and return its validator."""
        return self.schemas.register(name, node)

    def route(self, method: str, path: str, **kwargs) -> RouteDescriptor:
        """Declare an endpoint. See RouteRegistry.register for keyword arguments."""
        return self.routes.register(method, path, **kwargs)

    def freeze(self) -> "ContractSnapshot":
        """End the build phase.

        Assembles the document first so any unresolved reference fails here,
        before anything is served. Returns the same snapshot on repeat calls.

        Raises:
            ConfigurationError: if the document cannot be assembled.
        """
        if self._snapshot is not None:
            return self._snapshot

        document = assemble_document(self.schemas, self.routes, self.info)
        self.schemas.freeze()
        self.routes.freeze()
        self._snapshot = ContractSnapshot(self.schemas, self.routes, document)
        logger.info(
            "Contract frozen: %d schemas, %d routes", len(self.schemas), len(self.routes)
        )
        return self._snapshot


class ContractSnapshot:
    """Read-only view of a frozen contract. Safe to share between requests."""

    def __init__(self, schemas: SchemaRegistry, routes: RouteRegistry, document: dict):
        self._schemas = schemas
        self._routes = routes
        self._document = document

    def validator(self, schema_name: str) -> Validator:
        return self._schemas.validator(schema_name)

    def fragment(self, schema_name: str) -> dict:
        return self._schemas.fragment(schema_name)

    def schema_names(self) -> list[str]:
        return self._schemas.names()

    def route(self, method: str, path: str) -> RouteDescriptor:
        """Look up a declared route.

        Raises:
            RouteNotFound: if no such route was declared.
        """
        return self._routes.get(method, path)

    def routes(self) -> list[RouteDescriptor]:
        return list(self._routes)

    def document(self) -> dict:
        """A private copy of the assembled document."""
        return copy.deepcopy(self._document)

    def render(self, fmt: str = "json") -> str:
        return dump_document(self._document, fmt)
