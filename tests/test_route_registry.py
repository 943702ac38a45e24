import pytest

from api_contract.errors import ConfigurationError, RegistryFrozenError, RouteNotFound
from api_contract.registry.routes import PathParam, RouteDescriptor, RouteRegistry, template_params
from api_contract.schema.base import number, obj, string
from api_contract.schema.constraints import integer


class TestTemplateParams:
    def test_extracts_in_order(self):
        assert template_params("/owners/{ownerId}/pets/{petId}") == ["ownerId", "petId"]

    def test_no_params(self):
        assert template_params("/pets") == []


class TestRouteDescriptor:
    def test_method_upper_cased(self):
        route = RouteDescriptor(method="get", path="/pets")
        assert route.method == "GET"
        assert route.key == ("GET", "/pets")
        assert str(route) == "GET /pets"

    def test_unknown_method_rejected(self):
        with pytest.raises(ConfigurationError, match="Unsupported method"):
            RouteDescriptor(method="FETCH", path="/pets")

    def test_relative_path_rejected(self):
        with pytest.raises(ConfigurationError):
            RouteDescriptor(method="GET", path="pets")

    def test_repeated_template_param_rejected(self):
        with pytest.raises(ConfigurationError):
            RouteDescriptor(method="GET", path="/a/{id}/b/{id}")

    def test_param_not_in_template_rejected(self):
        with pytest.raises(ConfigurationError, match="not in the path template"):
            RouteDescriptor(method="GET", path="/pets", path_params=(PathParam(name="petId"),))

    def test_undeclared_params_default_to_string(self):
        route = RouteDescriptor(
            method="GET",
            path="/owners/{ownerId}/pets/{petId}",
            path_params=(PathParam(name="petId", node=number(integer())),),
        )
        params = route.parameters()
        assert [p.name for p in params] == ["ownerId", "petId"]
        assert params[0].node.type == "string"
        assert params[1].node.type == "number"

    def test_path_param_must_be_scalar(self):
        with pytest.raises(ConfigurationError):
            PathParam(name="petId", node=obj({"a": string()}))

    def test_invalid_response_status(self):
        with pytest.raises(ConfigurationError):
            RouteDescriptor(method="GET", path="/pets", response_status="20")

    def test_immutable(self):
        route = RouteDescriptor(method="GET", path="/pets")
        with pytest.raises(Exception):
            route.path = "/other"


class TestRouteRegistry:
    def test_register_and_get(self):
        routes = RouteRegistry()
        route = routes.register("post", "/pets", request_schema="NewPet", summary="Add a pet", tags=["pet"])
        assert routes.get("POST", "/pets") is route
        assert route.tags == ("pet",)

    def test_single_tag_string(self):
        route = RouteRegistry().register("GET", "/pets", tags="pet")
        assert route.tags == ("pet",)

    def test_duplicate_route_rejected(self):
        routes = RouteRegistry()
        routes.register("GET", "/pets")
        with pytest.raises(ConfigurationError, match="already registered"):
            routes.register("get", "/pets")

    def test_same_path_different_method(self):
        routes = RouteRegistry()
        routes.register("GET", "/pets")
        routes.register("POST", "/pets")
        assert len(routes) == 2

    def test_path_params_accept_nodes(self):
        route = RouteRegistry().register("GET", "/pet/{petId}", path_params={"petId": number(integer())})
        assert route.path_params[0].name == "petId"

    def test_bad_field_type_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            RouteRegistry().register("GET", "/pets", summary=42)

    def test_iteration_keeps_declaration_order(self):
        routes = RouteRegistry()
        routes.register("POST", "/pets")
        routes.register("GET", "/pet/{petId}")
        routes.register("GET", "/pets")
        assert [str(r) for r in routes] == ["POST /pets", "GET /pet/{petId}", "GET /pets"]

    def test_unknown_route(self):
        with pytest.raises(RouteNotFound):
            RouteRegistry().get("GET", "/pets")

    def test_register_after_freeze_rejected(self):
        routes = RouteRegistry()
        routes.freeze()
        with pytest.raises(RegistryFrozenError):
            routes.register("GET", "/pets")
