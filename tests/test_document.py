import json

import pytest
import yaml

from api_contract.config import DocumentInfo, TagInfo
from api_contract.document.assembler import assemble_document, dump_document
from api_contract.errors import ConfigurationError, UnresolvedSchemaError
from api_contract.registry.routes import PathParam, RouteRegistry
from api_contract.registry.schemas import SchemaRegistry
from api_contract.schema.base import number, obj, omit_fields, ref, required, string
from api_contract.schema.constraints import integer, positive

PET = obj({"id": required(number(integer(), positive())), "name": string()})


def _registries():
    schemas = SchemaRegistry()
    schemas.register("Pet", PET)
    schemas.register("NewPet", omit_fields(PET, ["id"]))
    routes = RouteRegistry()
    routes.register(
        "GET", "/pet/{petId}",
        response_schema="Pet",
        summary="Find pet by ID",
        tags=["pet"],
        path_params={"petId": PathParam(name="petId", node=number(integer()), description="ID of pet")},
    )
    routes.register(
        "POST", "/pets",
        request_schema="NewPet",
        response_schema="Pet",
        summary="Add a pet",
        request_description="Pet to add",
        tags=["pet"],
    )
    return schemas, routes


class TestAssemble:
    def test_top_level(self):
        schemas, routes = _registries()
        info = DocumentInfo(title="Petstore", version="2.0.0", servers=["http://api.test"])
        doc = assemble_document(schemas, routes, info)
        assert list(doc) == ["openapi", "info", "servers", "tags", "paths", "components"]
        assert doc["openapi"] == "3.0.3"
        assert doc["info"] == {"title": "Petstore", "version": "2.0.0"}
        assert doc["servers"] == [{"url": "http://api.test"}]

    def test_components_hold_all_schemas(self):
        schemas, routes = _registries()
        doc = assemble_document(schemas, routes)
        assert list(doc["components"]["schemas"]) == ["Pet", "NewPet"]
        assert doc["components"]["schemas"]["NewPet"] == {
            "type": "object",
            "properties": {"name": {"type": "string"}},
        }

    def test_get_operation(self):
        schemas, routes = _registries()
        op = assemble_document(schemas, routes)["paths"]["/pet/{petId}"]["get"]
        assert op == {
            "tags": ["pet"],
            "summary": "Find pet by ID",
            "parameters": [{
                "name": "petId",
                "in": "path",
                "description": "ID of pet",
                "required": True,
                "schema": {"type": "integer"},
            }],
            "responses": {
                "200": {
                    "description": "successful operation",
                    "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}},
                },
            },
        }

    def test_request_body(self):
        schemas, routes = _registries()
        op = assemble_document(schemas, routes)["paths"]["/pets"]["post"]
        assert op["requestBody"] == {
            "description": "Pet to add",
            "required": True,
            "content": {"application/json": {"schema": {"$ref": "#/components/schemas/NewPet"}}},
        }
        assert "parameters" not in op

    def test_response_without_schema(self):
        schemas = SchemaRegistry()
        routes = RouteRegistry()
        routes.register("DELETE", "/pet/{petId}", response_status="204", response_description="Deleted")
        op = assemble_document(schemas, routes)["paths"]["/pet/{petId}"]["delete"]
        assert op["responses"] == {"204": {"description": "Deleted"}}

    def test_methods_grouped_under_path_in_order(self):
        schemas, routes = _registries()
        routes.register("GET", "/pets", summary="List")
        doc = assemble_document(schemas, routes)
        assert list(doc["paths"]) == ["/pet/{petId}", "/pets"]
        assert list(doc["paths"]["/pets"]) == ["post", "get"]

    def test_tags_from_info_then_routes(self):
        schemas, routes = _registries()
        routes.register("GET", "/stores", tags=["store"])
        info = DocumentInfo(tags=[TagInfo(name="pet", description="Everything about your Pets")])
        doc = assemble_document(schemas, routes, info)
        assert doc["tags"] == [
            {"name": "pet", "description": "Everything about your Pets"},
            {"name": "store"},
        ]


class TestUnresolved:
    def test_route_naming_missing_schema(self):
        schemas = SchemaRegistry()
        routes = RouteRegistry()
        routes.register("POST", "/pets", request_schema="NewPet")
        with pytest.raises(ConfigurationError, match="NewPet") as exc:
            assemble_document(schemas, routes)
        assert isinstance(exc.value, UnresolvedSchemaError)
        assert "POST /pets" in str(exc.value)

    def test_dangling_schema_reference(self):
        schemas = SchemaRegistry()
        schemas.register("Pet", obj({"owner": ref("Owner")}))
        with pytest.raises(UnresolvedSchemaError, match="Owner"):
            assemble_document(schemas, RouteRegistry())


class TestDump:
    def test_assembly_is_idempotent(self):
        schemas, routes = _registries()
        first = dump_document(assemble_document(schemas, routes), "json")
        second = dump_document(assemble_document(schemas, routes), "json")
        assert first == second

    def test_json_round_trips(self):
        schemas, routes = _registries()
        doc = assemble_document(schemas, routes)
        assert json.loads(dump_document(doc, "json")) == doc

    def test_yaml_keeps_key_order(self):
        schemas, routes = _registries()
        text = dump_document(assemble_document(schemas, routes), "yaml")
        assert text.startswith("openapi: 3.0.3\n")
        assert yaml.safe_load(text)["paths"]["/pets"]["post"]["summary"] == "Add a pet"

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            dump_document({}, "xml")
