"""Folds registered routes and schemas into one OpenAPI document."""

import json
import logging
from typing import Iterable

import yaml

from api_contract.config import DocumentInfo
from api_contract.errors import UnresolvedSchemaError
from api_contract.registry.routes import RouteDescriptor
from api_contract.registry.schemas import SchemaRegistry
from api_contract.schema.compiler import compile_schema, ref_pointer

logger = logging.getLogger(__name__)

JSON_CONTENT = "application/json"


def assemble_document(
    schemas: SchemaRegistry,
    routes: Iterable[RouteDescriptor],
    info: DocumentInfo | None = None,
) -> dict:
    """Build the OpenAPI document for ``routes`` and every registered schema.

    Paths and methods keep declaration order, so the same registrations
    always produce the same document.

    Raises:
        UnresolvedSchemaError: if a route or a schema reference names a schema
            that is not registered.
    """
    info = info or DocumentInfo()
    schemas.check_references()

    paths: dict[str, dict] = {}
    tag_names: list[str] = [t.name for t in info.tags]
    for route in routes:
        for name in route.schema_names():
            if name not in schemas:
                raise UnresolvedSchemaError(name, f"route {route}")
        paths.setdefault(route.path, {})[route.method.lower()] = _operation(route)
        for tag in route.tags:
            if tag not in tag_names:
                tag_names.append(tag)

    descriptions = {t.name: t.description for t in info.tags}
    tags = []
    for name in tag_names:
        tag = {"name": name}
        if descriptions.get(name):
            tag["description"] = descriptions[name]
        tags.append(tag)

    document = {
        "openapi": info.openapi,
        "info": _info_block(info),
        "servers": [{"url": url} for url in info.server_urls()],
        "tags": tags,
        "paths": paths,
        "components": {"schemas": schemas.components()},
    }
    logger.debug("Assembled document with %d paths", len(paths))
    return document


def dump_document(document: dict, fmt: str = "json") -> str:
    """Serialize a document for documentation viewers. ``fmt`` is json or yaml."""
    if fmt == "json":
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"
    if fmt == "yaml":
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unknown document format '{fmt}', expected json or yaml")


def _info_block(info: DocumentInfo) -> dict:
    block = {"title": info.title}
    if info.description:
        block["description"] = info.description
    block["version"] = info.version
    return block


def _operation(route: RouteDescriptor) -> dict:
    operation: dict = {}
    if route.tags:
        operation["tags"] = list(route.tags)
    if route.summary:
        operation["summary"] = route.summary
    if route.description:
        operation["description"] = route.description
    if route.operation_id:
        operation["operationId"] = route.operation_id

    parameters = [_parameter(p) for p in route.parameters()]
    if parameters:
        operation["parameters"] = parameters

    if route.request_schema:
        body: dict = {}
        if route.request_description:
            body["description"] = route.request_description
        body["required"] = True
        body["content"] = _content(route.request_schema)
        operation["requestBody"] = body

    response: dict = {"description": route.response_description}
    if route.response_schema:
        response["content"] = _content(route.response_schema)
    operation["responses"] = {route.response_status: response}
    return operation


def _parameter(param) -> dict:
    entry = {"name": param.name, "in": "path"}
    if param.description:
        entry["description"] = param.description
    entry["required"] = True
    entry["schema"] = compile_schema(param.node).fragment
    return entry


def _content(schema_name: str) -> dict:
    return {JSON_CONTENT: {"schema": {"$ref": ref_pointer(schema_name)}}}
