"""Route descriptors and the registry that holds them."""

import logging
import re
from typing import Iterator

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from api_contract.errors import ConfigurationError, RegistryFrozenError, RouteNotFound
from api_contract.schema.base import Scalar, SchemaNode, string

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")

PATH_PARAM = re.compile(r"\{([^{}/]+)\}")
RESPONSE_STATUS = re.compile(r"^([1-5][0-9][0-9]|default)$")


def template_params(path: str) -> list[str]:
    """Names of the ``{param}`` placeholders in ``path``, in order."""
    return PATH_PARAM.findall(path)


class PathParam(BaseModel):
    """A ``{name}`` placeholder in a route's path template."""

    model_config = ConfigDict(frozen=True)

    name: str
    node: SchemaNode = string()
    description: str = ""

    @model_validator(mode="after")
    def check_scalar(self) -> "PathParam":
        if not isinstance(self.node, Scalar):
            raise ConfigurationError(f"Path parameter '{self.name}' must be a scalar")
        return self


class RouteDescriptor(BaseModel):
    """One declared endpoint, bound to schema names rather than schemas."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    summary: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    operation_id: str | None = None
    path_params: tuple[PathParam, ...] = ()
    request_schema: str | None = None
    request_description: str = ""
    response_schema: str | None = None
    response_status: str = "200"
    response_description: str = "successful operation"

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, value):
        return value.upper() if isinstance(value, str) else value

    @model_validator(mode="after")
    def check_route(self) -> "RouteDescriptor":
        if self.method not in HTTP_METHODS:
            raise ConfigurationError(
                f"Unsupported method '{self.method}', expected one of {list(HTTP_METHODS)}"
            )
        if not self.path.startswith("/"):
            raise ConfigurationError(f"Path '{self.path}' must start with '/'")
        names = template_params(self.path)
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Path '{self.path}' repeats a parameter name")
        declared = [p.name for p in self.path_params]
        if len(set(declared)) != len(declared):
            raise ConfigurationError(f"{self}: path parameter declared twice")
        unknown = [name for name in declared if name not in names]
        if unknown:
            raise ConfigurationError(f"{self}: parameters {unknown} are not in the path template")
        if not RESPONSE_STATUS.match(self.response_status):
            raise ConfigurationError(f"{self}: invalid response status '{self.response_status}'")
        return self

    @property
    def key(self) -> tuple[str, str]:
        return self.method, self.path

    def parameters(self) -> list[PathParam]:
        """Every template parameter in path order. Undeclared ones are strings."""
        declared = {p.name: p for p in self.path_params}
        return [declared.get(name) or PathParam(name=name) for name in template_params(self.path)]

    def schema_names(self) -> list[str]:
        return [n for n in (self.request_schema, self.response_schema) if n is not None]

    def __str__(self) -> str:
        return f"{self.method} {self.path}"


class RouteRegistry:
    """Holds one RouteDescriptor per method and path, in declaration order."""

    def __init__(self):
        self._routes: dict[tuple[str, str], RouteDescriptor] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(
        self,
        method: str,
        path: str,
        *,
        request_schema: str | None = None,
        response_schema: str | None = None,
        summary: str = "",
        description: str = "",
        tags: tuple[str, ...] | list[str] = (),
        path_params: dict[str, SchemaNode | PathParam] | None = None,
        operation_id: str | None = None,
        request_description: str = "",
        response_status: str = "200",
        response_description: str = "successful operation",
    ) -> RouteDescriptor:
        """Declare an endpoint.

        Schema names are not checked here; document assembly resolves them.

        Raises:
            ConfigurationError: on a malformed or duplicate route.
            RegistryFrozenError: once the registry is frozen.
        """
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register {method} {path} after freeze")

        if isinstance(tags, str):
            tags = (tags,)

        params = []
        for name, value in (path_params or {}).items():
            if isinstance(value, PathParam):
                params.append(value)
            else:
                params.append(PathParam(name=name, node=value))

        try:
            route = RouteDescriptor(
                method=method,
                path=path,
                summary=summary,
                description=description,
                tags=tuple(tags),
                operation_id=operation_id,
                path_params=tuple(params),
                request_schema=request_schema,
                request_description=request_description,
                response_schema=response_schema,
                response_status=str(response_status),
                response_description=response_description,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid route {method} {path}: {e}") from e

        if route.key in self._routes:
            raise ConfigurationError(f"Route {route} is already registered")
        self._routes[route.key] = route
        logger.debug("Registered route %s", route)
        return route

    def get(self, method: str, path: str) -> RouteDescriptor:
        route = self._routes.get((method.upper(), path))
        if route is None:
            raise RouteNotFound(method.upper(), path)
        return route

    def __iter__(self) -> Iterator[RouteDescriptor]:
        return iter(list(self._routes.values()))

    def __len__(self) -> int:
        return len(self._routes)

    def freeze(self) -> None:
        self._frozen = True
