import pytest

from api_contract.errors import ConfigurationError, RegistryFrozenError, UnresolvedSchemaError
from api_contract.registry.schemas import SchemaRegistry
from api_contract.schema.base import array, number, obj, optional, ref, required, string
from api_contract.schema.compiler import MAX_REF_DEPTH


def _tree():
    return obj({"label": required(string()), "children": optional(array(ref("Node")))})


def _chain(depth):
    node = {"label": "leaf"}
    for _ in range(depth):
        node = {"label": "n", "children": [node]}
    return node


class TestRegister:
    def test_register_returns_validator(self):
        registry = SchemaRegistry()
        validator = registry.register("Name", string())
        assert validator("Rex").ok is True
        assert "Name" in registry
        assert len(registry) == 1

    def test_duplicate_name_rejected(self):
        registry = SchemaRegistry()
        registry.register("Pet", obj({"name": string()}))
        with pytest.raises(ConfigurationError, match="already registered"):
            registry.register("Pet", obj({"id": number()}))

    def test_invalid_name_rejected(self):
        with pytest.raises(ConfigurationError):
            SchemaRegistry().register("Pet Shop", string())

    def test_names_in_registration_order(self):
        registry = SchemaRegistry()
        for name in ("Zebra", "Apple", "Mango"):
            registry.register(name, string())
        assert registry.names() == ["Zebra", "Apple", "Mango"]

    def test_unknown_lookup(self):
        with pytest.raises(UnresolvedSchemaError):
            SchemaRegistry().validator("Pet")


class TestFragments:
    def test_fragment_is_a_copy(self):
        registry = SchemaRegistry()
        registry.register("Pet", obj({"name": string()}))
        registry.fragment("Pet")["properties"]["name"]["type"] = "number"
        assert registry.fragment("Pet")["properties"]["name"] == {"type": "string"}

    def test_nested_named_shape_emitted_as_ref(self):
        registry = SchemaRegistry()
        registry.register("Owner", obj({"name": string()}))
        registry.register("Pet", obj({"owner": ref("Owner")}))
        assert registry.fragment("Pet")["properties"]["owner"] == {"$ref": "#/components/schemas/Owner"}

    def test_components(self):
        registry = SchemaRegistry()
        registry.register("A", string())
        registry.register("B", number())
        assert registry.components() == {"A": {"type": "string"}, "B": {"type": "number"}}


class TestReferences:
    def test_forward_reference(self):
        registry = SchemaRegistry()
        validator = registry.register("Pet", obj({"owner": ref("Owner")}))
        registry.register("Owner", obj({"name": required(string())}))
        result = validator({"owner": {}})
        assert [(v.path, v.constraint_kind) for v in result.errors] == [("owner.name", "required")]

    def test_recursive_reference(self):
        registry = SchemaRegistry()
        validator = registry.register("Node", _tree())
        registry.freeze()
        result = validator({"label": "root", "children": [{"label": "a"}, {"children": []}]})
        assert [(v.path, v.constraint_kind) for v in result.errors] == [("children[1].label", "required")]

    def test_deep_recursive_payload_reported_not_raised(self):
        registry = SchemaRegistry()
        validator = registry.register("Node", _tree())
        registry.freeze()
        assert validator(_chain(10)).ok

        result = validator(_chain(5000))
        assert [v.constraint_kind for v in result.errors] == ["nesting-depth"]
        assert result.errors[0].path.count("children[0]") == MAX_REF_DEPTH + 1

    def test_unresolved_reference_blocks_freeze(self):
        registry = SchemaRegistry()
        registry.register("Pet", obj({"owner": ref("Owner")}))
        with pytest.raises(UnresolvedSchemaError, match="Owner") as exc:
            registry.freeze()
        assert exc.value.name == "Owner"
        assert registry.frozen is False


class TestFreeze:
    def test_register_after_freeze_rejected(self):
        registry = SchemaRegistry()
        registry.freeze()
        with pytest.raises(RegistryFrozenError):
            registry.register("Pet", string())

    def test_frozen_error_is_configuration_error(self):
        assert issubclass(RegistryFrozenError, ConfigurationError)

    def test_freeze_twice(self):
        registry = SchemaRegistry()
        registry.freeze()
        registry.freeze()
        assert registry.frozen is True
