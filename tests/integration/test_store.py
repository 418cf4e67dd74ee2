from datetime import date

import pytest

from vetclinic.errors import (
    BusinessRuleError,
    NotFoundError,
    ReferenceMissingError,
    ValidationError,
)
from vetclinic.extensions import db
from vetclinic.models import Owner, Ownership, Pet, Visit


def test_create_pet_with_owners_records_pairings(clinic, sample_data):
    assert clinic.owner_ids_for_pet(sample_data["michi"]) == sorted(
        [sample_data["ana"], sample_data["luis"]]
    )
    assert clinic.pet_ids_for_owner(sample_data["luis"]) == sorted(
        [sample_data["michi"], sample_data["rex"]]
    )


def test_update_pet_replaces_owner_set(clinic, sample_data, make_owner):
    marta = make_owner("Marta", "Ruiz", 50)
    clinic.update_pet(sample_data["michi"], {}, [marta, sample_data["ana"]])
    assert clinic.owner_ids_for_pet(sample_data["michi"]) == sorted([marta, sample_data["ana"]])


def test_update_pet_without_owner_ids_keeps_pairings(clinic, sample_data):
    before = clinic.owner_ids_for_pet(sample_data["michi"])
    clinic.update_pet(sample_data["michi"], {"condition": "Recovering"}, None)
    assert clinic.owner_ids_for_pet(sample_data["michi"]) == before
    assert clinic.get_pet(sample_data["michi"]).condition == "Recovering"


def test_update_pet_with_empty_owner_ids_clears_pairings(clinic, sample_data):
    clinic.update_pet(sample_data["michi"], {}, [])
    assert clinic.owner_ids_for_pet(sample_data["michi"]) == []
    assert clinic.get_pet(sample_data["michi"]) is not None


def test_update_owner_replaces_pet_set(clinic, sample_data):
    clinic.update_owner(sample_data["ana"], {"phone": "555-9999"}, [sample_data["kiwi"]])
    assert clinic.pet_ids_for_owner(sample_data["ana"]) == [sample_data["kiwi"]]
    # michi leaves this owner but keeps its other one
    assert clinic.owner_ids_for_pet(sample_data["michi"]) == [sample_data["luis"]]


def test_create_pet_with_missing_owner_rolls_back(clinic, sample_data):
    before = Pet.query.count()
    with pytest.raises(ReferenceMissingError):
        clinic.create_pet(
            Pet(name="Ghost", species="Gato", age=1, birth_date=date(2024, 1, 1)),
            [sample_data["ana"], 9999],
        )
    assert Pet.query.count() == before
    assert Pet.query.filter_by(name="Ghost").first() is None


def test_update_pet_with_missing_owner_keeps_old_state(clinic, sample_data):
    before = clinic.owner_ids_for_pet(sample_data["michi"])
    with pytest.raises(ReferenceMissingError):
        clinic.update_pet(sample_data["michi"], {"name": "Renamed"}, [9999])
    db.session.expire_all()
    assert clinic.owner_ids_for_pet(sample_data["michi"]) == before
    assert clinic.get_pet(sample_data["michi"]).name == "Michi"


def test_delete_owner_cascades_pairings_only(clinic, sample_data):
    assert clinic.delete_owner(sample_data["luis"]) is True
    assert Ownership.query.filter_by(owner_id=sample_data["luis"]).count() == 0
    assert clinic.get_pet(sample_data["rex"]) is not None
    assert clinic.owner_ids_for_pet(sample_data["michi"]) == [sample_data["ana"]]


def test_delete_pet_cascades_visits_and_pairings(clinic, sample_data):
    assert clinic.delete_pet(sample_data["michi"]) is True
    assert Visit.query.filter_by(pet_id=sample_data["michi"]).count() == 0
    assert Ownership.query.filter_by(pet_id=sample_data["michi"]).count() == 0
    assert Owner.query.count() == 2


def test_delete_missing_rows_report_false(clinic):
    assert clinic.delete_owner(404) is False
    assert clinic.delete_pet(404) is False
    assert clinic.delete_visit(404) is False


def test_visit_for_missing_pet_is_rejected(clinic):
    with pytest.raises(ReferenceMissingError, match="pet not found for visit"):
        clinic.create_visit(Visit(pet_id=12345, date=date(2024, 1, 1), diagnosis="x", treatment="y"))
    assert Visit.query.count() == 0


def test_update_visit_to_missing_pet_is_rejected(clinic, sample_data):
    with pytest.raises(ReferenceMissingError):
        clinic.update_visit(sample_data["older_visit"], {"pet_id": 777})


def test_update_missing_rows_raise_not_found(clinic):
    with pytest.raises(NotFoundError):
        clinic.update_owner(1, {"first_name": "X"})
    with pytest.raises(NotFoundError):
        clinic.update_pet(1, {"name": "X"})
    with pytest.raises(NotFoundError):
        clinic.update_visit(1, {"diagnosis": "X"})


def test_model_validation_rejects_bad_values(app):
    with pytest.raises(ValidationError):
        Owner(first_name="  ", last_name="Perez", age=20)
    with pytest.raises(ValidationError):
        Owner(first_name="Ana", last_name="Perez", age=200)
    with pytest.raises(ValidationError):
        Pet(name="Rex", species="Perro", age=2, birth_date="2024/01/01")


def test_pet_condition_defaults_to_healthy(clinic, sample_data):
    assert clinic.get_pet(sample_data["kiwi"]).condition == "Healthy"


def test_visits_are_newest_first(clinic, sample_data):
    ids = [v.id for v in clinic.visits_for_pet(sample_data["michi"])]
    assert ids == [sample_data["newer_visit"], sample_data["older_visit"]]
    lite = clinic.visits_for_pet_lite(sample_data["michi"])
    assert lite[0] == {"id": sample_data["newer_visit"], "date": "2024-06-02"}


def test_visits_on_date(clinic, sample_data):
    found = clinic.visits_on_date(sample_data["michi"], "2024-01-10")
    assert [v.id for v in found] == [sample_data["older_visit"]]
    with pytest.raises(ValidationError):
        clinic.visits_on_date(sample_data["michi"], "10/01/2024")


def test_pets_with_last_visit(clinic, sample_data):
    rows = {r["id"]: r for r in clinic.pets_with_last_visit()}
    michi = rows[sample_data["michi"]]
    assert michi["last_visit_id"] == sample_data["newer_visit"]
    assert michi["last_visit_date"] == "2024-06-02"
    assert michi["owners"] == "Ana Perez || Luis Gomez"
    assert rows[sample_data["kiwi"]]["last_visit_id"] is None
    assert rows[sample_data["kiwi"]]["owners"] is None


def test_search_owners_matches_full_name(clinic, sample_data):
    assert [o.id for o in clinic.search_owners("ana per")] == [sample_data["ana"]]
    assert [o.id for o in clinic.search_owners("GOMEZ")] == [sample_data["luis"]]
    assert clinic.search_owners("   ") == []


def test_search_and_exact_find_pets(clinic, sample_data):
    assert [d["pet"].id for d in clinic.search_pets("ich")] == [sample_data["michi"]]
    assert clinic.find_pets_by_name("mich") == []
    exact = clinic.find_pets_by_name("MICHI")
    assert exact[0]["pet"].id == sample_data["michi"]
    assert len(exact[0]["visits"]) == 2


def test_relation(clinic, sample_data):
    owner, pet = clinic.relation(sample_data["rex"], sample_data["luis"])
    assert (owner.id, pet.id) == (sample_data["luis"], sample_data["rex"])
    assert clinic.relation(sample_data["rex"], sample_data["ana"]) is None


def test_export_rows_join_owner_names(clinic, sample_data):
    rows = {r[0]: r for r in clinic.export_rows()}
    assert rows[sample_data["michi"]][4] == "2021-05-04"
    assert rows[sample_data["michi"]][6] == "Ana Perez; Luis Gomez"
    assert rows[sample_data["kiwi"]][6] == ""


def test_autocomplete(clinic, sample_data):
    owners = clinic.autocomplete("dueno", "lu")
    assert owners == [{"id": sample_data["luis"], "label": "Luis Gomez"}]
    with pytest.raises(ValidationError):
        clinic.autocomplete("owner", "  ")
    with pytest.raises(BusinessRuleError):
        clinic.autocomplete("color", "x")
