from ..errors import NotFoundError
from ..models.visit import Visit
from .dispatch import action, clinic, fail, ok, require_id
from .forms import VisitForm


def _visits(rows):
    return [v.to_dict() for v in rows]


@action("create_visit")
def create_visit(data: dict):
    fields = VisitForm.from_values(data).cleaned()
    visit_id = clinic.create_visit(Visit(**fields))
    return ok(201, visit_id=visit_id)


@action("edit_visit")
def edit_visit(data: dict):
    visit_id = require_id(data)
    visit = clinic.get_visit(visit_id)
    if visit is None:
        raise NotFoundError("visit not found")
    fields = VisitForm.from_values({**visit.to_dict(), **data}).cleaned()
    clinic.update_visit(visit_id, fields)
    return ok(visit_id=visit_id)


@action("delete_visit")
def delete_visit(data: dict):
    visit_id = require_id(data)
    if not clinic.delete_visit(visit_id):
        return fail("could not delete visit", 400)
    return ok(visit_id=visit_id)


@action("get_visit")
def get_visit(data: dict):
    visit = clinic.get_visit(require_id(data))
    return ok(visit=visit.to_dict() if visit else None)


@action("all_visits")
def all_visits(data: dict):
    return ok(visits=_visits(clinic.list_visits()))


@action("visits_by_pet")
def visits_by_pet(data: dict):
    return ok(visits=_visits(clinic.visits_for_pet(require_id(data, "pet_id"))))


@action("visits_by_pet_lite")
def visits_by_pet_lite(data: dict):
    return ok(visits=clinic.visits_for_pet_lite(require_id(data, "pet_id")))


@action("visits_by_date")
def visits_by_date(data: dict):
    pet_id = require_id(data, "pet_id")
    day = str(data.get("date") or "").strip()
    if not day:
        return fail("pet_id and date are required", 400)
    return ok(visits=_visits(clinic.visits_on_date(pet_id, day)))
