"""Petstore example: one schema definition drives both validation and docs.

The store and handlers stand in for the HTTP layer. Handlers return
``(status, body)`` tuples so any web framework can wrap them.
"""

import copy
import logging
from typing import Any

from api_contract.config import DocumentInfo, TagInfo
from api_contract.context import BuildContext, ContractSnapshot
from api_contract.pipeline import ValidationPipeline
from api_contract.registry.routes import PathParam
from api_contract.schema.base import array, number, obj, omit_fields, ref, required, string
from api_contract.schema.constraints import enum_of, integer, positive
from api_contract.schema.result import ValidationResult

logger = logging.getLogger(__name__)

PET_STATUSES = ("available", "pending", "sold")

COMMON_PET_FIELDS = {
    "name": string(),
    "status": string(enum_of(*PET_STATUSES)),
}

PET = obj({
    "id": required(number(integer(), positive())),
    **COMMON_PET_FIELDS,
})

# Clients never choose ids, so the create payload is Pet without one.
NEW_PET = omit_fields(PET, ["id"])

PET_LIST = array(ref("Pet"))

PETSTORE_INFO = DocumentInfo(
    title="Swagger Petstore - OpenAPI 3.0",
    description="Pet store whose validation and documentation share one schema",
    version="1.0.0",
    tags=[TagInfo(name="pet", description="Everything about your Pets")],
)

SEED_PETS = [
    {"id": 1, "name": "The Dog", "status": "sold"},
    {"id": 2, "name": "The Cat", "status": "available"},
]


def build_petstore(info: DocumentInfo | None = None) -> ContractSnapshot:
    """Declare the petstore schemas and routes and freeze them."""
    ctx = BuildContext(info or PETSTORE_INFO)
    ctx.schema("Pet", PET)
    ctx.schema("NewPet", NEW_PET)
    ctx.schema("PetList", PET_LIST)

    ctx.route(
        "GET", "/pets",
        response_schema="PetList",
        summary="List all pets",
        tags=["pet"],
        operation_id="listPets",
    )
    ctx.route(
        "GET", "/pet/{petId}",
        response_schema="Pet",
        summary="Find pet by ID",
        description="Returns a single pet",
        tags=["pet"],
        operation_id="getPetById",
        path_params={
            "petId": PathParam(
                name="petId",
                node=number(integer(), positive()),
                description="ID of pet to return",
            ),
        },
    )
    ctx.route(
        "POST", "/pets",
        request_schema="NewPet",
        response_schema="Pet",
        summary="Add a new pet to the store",
        description="Add a new pet to the store",
        request_description="Create a new pet in the store",
        tags=["pet"],
        operation_id="addPet",
    )
    return ctx.freeze()


class PetNotFound(LookupError):
    """No pet is stored under the requested id."""

    def __init__(self, pet_id: int):
        self.pet_id = pet_id
        super().__init__(f"Pet {pet_id} not found")


class PetStore:
    """Volatile in-memory pet records keyed by id."""

    def __init__(self, seed: list[dict] | None = None):
        pets = SEED_PETS if seed is None else seed
        self._pets: dict[int, dict] = {p["id"]: copy.deepcopy(p) for p in pets}

    def get(self, pet_id: int) -> dict:
        pet = self._pets.get(pet_id)
        if pet is None:
            raise PetNotFound(pet_id)
        return copy.deepcopy(pet)

    def list(self) -> list[dict]:
        return [copy.deepcopy(p) for p in self._pets.values()]

    def add(self, new_pet: dict) -> dict:
        """Store a validated NewPet and return it with its assigned id."""
        pet_id = max(self._pets, default=0) + 1
        pet = {"id": pet_id, **{k: v for k, v in new_pet.items() if k != "id"}}
        self._pets[pet_id] = pet
        return copy.deepcopy(pet)


class PetHandlers:
    """Route handlers gated by the validation pipeline."""

    def __init__(self, snapshot: ContractSnapshot, store: PetStore | None = None):
        self.pipeline = ValidationPipeline(snapshot)
        self.store = store if store is not None else PetStore()

    def list_pets(self) -> tuple[int, Any]:
        return self._respond(("GET", "/pets"), self.store.list())

    def get_pet(self, raw_pet_id: str) -> tuple[int, Any]:
        route = ("GET", "/pet/{petId}")
        params = self.pipeline.validate_path_params(route, {"petId": raw_pet_id})
        if not params.ok:
            return 400, params.to_dict()
        try:
            pet = self.store.get(params.value["petId"])
        except PetNotFound as e:
            return 404, {"message": str(e)}
        return self._respond(route, pet)

    def create_pet(self, body: Any) -> tuple[int, Any]:
        route = ("POST", "/pets")
        result = self.pipeline.validate_request(route, body)
        if not result.ok:
            return 400, result.to_dict()
        return self._respond(route, self.store.add(result.value))

    def _respond(self, route: tuple[str, str], body: Any) -> tuple[int, Any]:
        # Response drift is logged, never turned into a client error.
        checked: ValidationResult = self.pipeline.validate_response(route, body)
        if not checked.ok:
            logger.warning(
                "Response for %s %s does not match its schema: %s",
                *route, [v.message for v in checked.errors],
            )
        return 200, body
