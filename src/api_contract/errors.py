"""Exception hierarchy for contract definition and lookup.

Startup problems are ConfigurationError and must stop the service from
serving. Payload rejections are not exceptions at all: they come back as
ValidationResult values from the validators.
"""


class ConfigurationError(Exception):
    """A contract definition is malformed. Fatal at startup."""


class UnresolvedSchemaError(ConfigurationError):
    """A route or reference names a schema that was never registered."""

    def __init__(self, name: str, referrer: str | None = None):
        self.name = name
        self.referrer = referrer
        message = f"Unknown schema '{name}'"
        if referrer:
            message += f" referenced by {referrer}"
        super().__init__(message)


class RegistryFrozenError(ConfigurationError):
    """A registry was mutated after the build phase ended."""


class RouteNotFound(LookupError):
    """No route was declared for the given method and path."""

    def __init__(self, method: str, path: str):
        self.method = method
        self.path = path
        super().__init__(f"No route declared for {method} {path}")
