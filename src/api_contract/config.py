"""Document-level settings: the OpenAPI ``info``, ``servers`` and ``tags`` blocks.

Settings come from an optional YAML file; the default server URL can be
overridden with the API_CONTRACT_SERVER_URL environment variable.
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

from api_contract.errors import ConfigurationError

DEFAULT_OPENAPI_VERSION = "3.0.3"


def default_server_url() -> str:
    return os.getenv("API_CONTRACT_SERVER_URL", "http://localhost:3000")


class TagInfo(BaseModel):
    """A documented operation group."""

    name: str
    description: str = ""


class DocumentInfo(BaseModel):
    """Everything in the document that does not come from schemas or routes."""

    title: str = "API"
    description: str = ""
    version: str = "1.0.0"
    openapi: str = DEFAULT_OPENAPI_VERSION
    servers: list[str] = []
    tags: list[TagInfo] = []

    def server_urls(self) -> list[str]:
        return self.servers or [default_server_url()]


def load_document_info(path: Path | None = None) -> DocumentInfo:
    """Load DocumentInfo from a YAML file, or return defaults when ``path`` is None.

    Raises:
        ConfigurationError: if the file is not valid YAML or has the wrong shape.
    """
    if path is None:
        return DocumentInfo()

    text = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"{path}: not valid YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping at the top level")

    try:
        return DocumentInfo(**data)
    except ValidationError as e:
        raise ConfigurationError(f"{path}: {e}") from e
