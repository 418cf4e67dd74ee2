from ..errors import NotFoundError
from ..models.pet import Pet
from .dispatch import action, clinic, fail, ok, require_id
from .forms import PetForm
from .serializers import details_json, owners_json, pet_json, pets_json


@action("create_pet")
def create_pet(data: dict):
    fields = PetForm.from_values(data).cleaned()
    pet_id = clinic.create_pet(Pet(**fields), data.get("owner_ids"))
    return ok(201, pet_id=pet_id)


@action("edit_pet")
def edit_pet(data: dict):
    pet_id = require_id(data)
    pet = clinic.get_pet(pet_id)
    if pet is None:
        raise NotFoundError("pet not found")
    fields = PetForm.from_values({**pet.to_dict(), **data}).cleaned()
    # absent owner_ids keeps the current owners, [] clears them
    clinic.update_pet(pet_id, fields, data.get("owner_ids"))
    return ok(pet_id=pet_id)


@action("delete_pet")
def delete_pet(data: dict):
    pet_id = require_id(data)
    if not clinic.delete_pet(pet_id):
        return fail("could not delete pet", 400)
    return ok(pet_id=pet_id)


@action("get_pet")
def get_pet(data: dict):
    return ok(pet=pet_json(clinic.get_pet(require_id(data))))


@action("all_pets")
def all_pets(data: dict):
    return ok(pets=pets_json(clinic.list_pets()))


@action("list_pets")
def list_pets(data: dict):
    """Pets with owner names and their most recent visit."""
    return ok(pets=clinic.pets_with_last_visit())


@action("search_pets")
def search_pets(data: dict):
    name = str(data.get("name") or "").strip()
    if not name:
        return fail("name is required", 422)
    return ok(results=[details_json(d) for d in clinic.search_pets(name)])


@action("find_pet_exact")
def find_pet_exact(data: dict):
    name = str(data.get("name") or "").strip()
    if not name:
        return fail("name is required", 422)
    return ok(results=[details_json(d) for d in clinic.find_pets_by_name(name)])


@action("pets_by_species")
def pets_by_species(data: dict):
    species = str(data.get("species") or "").strip()
    if not species:
        return fail("species is required", 422)
    return ok(pets=pets_json(clinic.pets_by_species(species)))


@action("owners_by_pet")
def owners_by_pet(data: dict):
    return ok(owners=owners_json(clinic.owners_for_pet(require_id(data, "pet_id"))))


@action("owner_pet_relation")
def owner_pet_relation(data: dict):
    pair = clinic.relation(require_id(data, "pet_id"), require_id(data, "owner_id"))
    if pair is None:
        raise NotFoundError("relation not found")
    owner, pet = pair
    return ok(owner=owner.to_dict(), pet=pet.to_dict())
