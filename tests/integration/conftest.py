import os
import sys
from datetime import date

import pytest

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from vetclinic import create_app
from vetclinic.extensions import db
from vetclinic.models import Owner, Pet, Visit
from vetclinic.services import ClinicService


def _assert_memory_db(uri: str):
    if uri != "sqlite:///:memory:":
        raise RuntimeError(
            f"Refusing to run tests on non-memory DB: {uri!r}. "
            "This guard protects your real database."
        )


@pytest.fixture(scope="function")
def app():
    os.environ.pop("DATABASE_URL", None)

    flask_app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key",
            "WTF_CSRF_ENABLED": False,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SERVER_NAME": "localhost",
        }
    )

    _assert_memory_db(flask_app.config["SQLALCHEMY_DATABASE_URI"])

    with flask_app.app_context():
        db.create_all()
        yield flask_app
        _assert_memory_db(flask_app.config["SQLALCHEMY_DATABASE_URI"])
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def clinic(app):
    return ClinicService()


@pytest.fixture()
def call(client):
    """Hit ``/api`` with an action; JSON body for writes, query string otherwise."""
    def _call(action: str, method: str = "GET", body=None, **params):
        params["action"] = action
        if body is None:
            return client.open("/api", method=method, query_string=params)
        return client.open("/api", method=method, query_string=params, json=body)
    return _call


@pytest.fixture()
def make_owner(clinic):
    def _make_owner(first="Ana", last="Perez", age=30, phone=None, pet_ids=None):
        return clinic.create_owner(
            Owner(first_name=first, last_name=last, age=age, phone=phone), pet_ids
        )
    return _make_owner


@pytest.fixture()
def make_pet(clinic):
    def _make_pet(name="Michi", species="Gato", age=2, born=date(2022, 3, 1),
                  condition=None, owner_ids=None):
        return clinic.create_pet(
            Pet(name=name, species=species, age=age, birth_date=born, condition=condition),
            owner_ids,
        )
    return _make_pet


@pytest.fixture()
def sample_data(clinic, make_owner, make_pet):
    ana = make_owner("Ana", "Perez", 34, "555-0101")
    luis = make_owner("Luis", "Gomez", 41)
    michi = make_pet("Michi", "Gato negro", 3, date(2021, 5, 4), owner_ids=[ana, luis])
    rex = make_pet("Rex", "Perro", 7, date(2017, 2, 11), condition="Arthritis", owner_ids=[luis])
    kiwi = make_pet("Kiwi", "Loro", 1, date(2023, 8, 30))

    older = clinic.create_visit(
        Visit(pet_id=michi, date=date(2024, 1, 10), diagnosis="Checkup", treatment="None")
    )
    newer = clinic.create_visit(
        Visit(pet_id=michi, date=date(2024, 6, 2), diagnosis="Otitis", treatment="Ear drops")
    )

    return {
        "ana": ana,
        "luis": luis,
        "michi": michi,
        "rex": rex,
        "kiwi": kiwi,
        "older_visit": older,
        "newer_visit": newer,
    }
