from ..errors import NotFoundError
from ..models.owner import Owner
from .dispatch import action, clinic, fail, ok, require_id
from .forms import OwnerForm
from .serializers import details_json, owner_json, owners_json, pets_json


@action("create_owner")
def create_owner(data: dict):
    fields = OwnerForm.from_values(data).cleaned()
    owner_id = clinic.create_owner(Owner(**fields), data.get("pet_ids"))
    return ok(201, owner_id=owner_id)


@action("edit_owner")
def edit_owner(data: dict):
    owner_id = require_id(data)
    owner = clinic.get_owner(owner_id)
    if owner is None:
        raise NotFoundError("owner not found")
    fields = OwnerForm.from_values({**owner.to_dict(), **data}).cleaned()
    # absent pet_ids keeps the current pets, [] clears them
    clinic.update_owner(owner_id, fields, data.get("pet_ids"))
    return ok(owner_id=owner_id)


@action("delete_owner")
def delete_owner(data: dict):
    owner_id = require_id(data)
    if not clinic.delete_owner(owner_id):
        return fail("could not delete owner", 400)
    return ok(owner_id=owner_id)


@action("get_owner")
def get_owner(data: dict):
    return ok(owner=owner_json(clinic.get_owner(require_id(data))))


@action("list_owners")
def list_owners(data: dict):
    return ok(owners=owners_json(clinic.list_owners()))


@action("search_owners")
def search_owners(data: dict):
    q = str(data.get("q") or "").strip()
    if not q:
        return fail("q is required", 422)
    return ok(results=owners_json(clinic.search_owners(q)))


@action("pets_by_owner")
def pets_by_owner(data: dict):
    return ok(pets=pets_json(clinic.pets_for_owner(require_id(data, "owner_id"))))


@action("pets_by_owner_full")
def pets_by_owner_full(data: dict):
    owner_id = require_id(data, "owner_id")
    results = [
        details_json(clinic.pet_details(pet_id))
        for pet_id in clinic.pet_ids_for_owner(owner_id)
    ]
    return ok(results=results)
