from __future__ import annotations

import random
from datetime import date, timedelta

import click
from flask import current_app

from .extensions import db

from .models.owner import Owner
from .models.ownership import Ownership
from .models.pet import Pet
from .models.visit import Visit
from .services import ClinicService


def _db_uri() -> str:
    return current_app.config.get("SQLALCHEMY_DATABASE_URI", "")

@click.command("init-db")
def init_db_cmd():
    uri = _db_uri()
    click.echo(f"Creating tables on DB: {uri}")
    db.create_all()
    click.echo("✔ Tables created.")

@click.command("reset-db")
@click.option("--force", is_flag=True, help="Drop + create (irreversible).")
def reset_db_cmd(force: bool):
    uri = _db_uri()
    if not force:
        click.echo("Add --force to confirm dropping all tables.")
        return
    click.echo(f"Dropping & creating tables on DB: {uri}")
    db.drop_all()
    db.create_all()
    click.echo("✔ Database reset.")

@click.command("purge-data")
def purge_data_cmd():
    db.session.query(Visit).delete()
    db.session.query(Ownership).delete()
    db.session.query(Pet).delete()
    db.session.query(Owner).delete()
    db.session.commit()
    click.echo("✔ All data removed (schema kept).")

@click.command("seed-demo")
def seed_demo_cmd():
    clinic = ClinicService()
    ana = clinic.create_owner(Owner(first_name="Ana", last_name="Perez", age=34, phone="555-0101"))
    luis = clinic.create_owner(Owner(first_name="Luis", last_name="Gomez", age=41))

    michi = clinic.create_pet(
        Pet(name="Michi", age=3, species="Gato negro", birth_date=date(2021, 5, 4)),
        [ana, luis],
    )
    rex = clinic.create_pet(
        Pet(name="Rex", age=7, species="Perro", birth_date=date(2017, 2, 11), condition="Arthritis"),
        [luis],
    )
    clinic.create_pet(Pet(name="Kiwi", age=1, species="Loro", birth_date=date(2023, 8, 30)))

    clinic.create_visit(Visit(pet_id=michi, date=date.today(), diagnosis="Checkup", treatment="None"))
    clinic.create_visit(
        Visit(pet_id=rex, date=date.today() - timedelta(days=30), diagnosis="Joint pain", treatment="Anti-inflammatory")
    )
    click.echo("✔ Seed done. Owners: Ana Perez, Luis Gomez; pets: Michi, Rex, Kiwi")

FIRST_NAMES = [
    "Alex", "Mira", "Daniel", "Eva", "Ivo", "Nina", "Chris", "Maria", "Petar", "Sofia",
    "Lucia", "Mateo", "Valentina", "Diego", "Camila", "Javier", "Elena", "Tomas",
]
LAST_NAMES = [
    "Petrov", "Garcia", "Ivanov", "Lopez", "Nikolov", "Martinez", "Kolev",
    "Rodriguez", "Kostov", "Fernandez", "Vasilev", "Sanchez", "Romero",
]
PET_NAMES = [
    "Maca", "Rex", "Bobi", "Luna", "Simba", "Molly", "Kaya", "Pufi", "Rocky", "Tara", "Miro", "Sisi",
]
SPECIES = ["Cat", "Dog", "Bird", "Hamster", "Rabbit"]
CONDITIONS = ["Healthy", "Healthy", "Healthy", "Overweight", "Allergy", "Recovering"]
DIAGNOSES = [
    ("Checkup", "None"),
    ("Otitis", "Ear drops"),
    ("Vaccination", "Rabies vaccine"),
    ("Dermatitis", "Medicated shampoo"),
    ("Dental tartar", "Cleaning"),
]

def _rand_pet() -> Pet:
    age = random.randint(0, 14)
    born = date.today() - timedelta(days=365 * age + random.randint(0, 364))
    return Pet(
        name=random.choice(PET_NAMES),
        age=age,
        species=random.choice(SPECIES),
        birth_date=born,
        condition=random.choice(CONDITIONS),
    )

@click.command("seed-bulk")
@click.option("--owners", default=20, show_default=True, help="Number of owners.")
@click.option("--pets-per-owner-max", default=3, show_default=True, help="Max pets per owner.")
@click.option("--visits-per-pet-max", default=4, show_default=True, help="Max visits per pet.")
def seed_bulk_cmd(owners: int, pets_per_owner_max: int, visits_per_pet_max: int):
    random.seed(42)
    click.echo(f"Seeding on DB: {_db_uri()}")
    clinic = ClinicService()

    owner_ids = [
        clinic.create_owner(
            Owner(
                first_name=random.choice(FIRST_NAMES),
                last_name=random.choice(LAST_NAMES),
                age=random.randint(18, 85),
                phone=f"555-{random.randint(0, 9999):04d}",
            )
        )
        for _ in range(owners)
    ]

    pet_ids: list[int] = []
    for oid in owner_ids:
        for _ in range(random.randint(1, pets_per_owner_max)):
            co_owners = [oid]
            if random.random() < 0.2:
                co_owners.append(random.choice(owner_ids))
            pet_ids.append(clinic.create_pet(_rand_pet(), co_owners))

    total_visits = 0
    for pid in pet_ids:
        for _ in range(random.randint(0, visits_per_pet_max)):
            diagnosis, treatment = random.choice(DIAGNOSES)
            clinic.create_visit(
                Visit(
                    pet_id=pid,
                    date=date.today() - timedelta(days=random.randint(0, 720)),
                    diagnosis=diagnosis,
                    treatment=treatment,
                )
            )
            total_visits += 1

    click.echo(
        "✔ Seed completed:\n"
        f"  Owners: {len(owner_ids)}\n"
        f"  Pets: {len(pet_ids)}\n"
        f"  Visits: {total_visits}"
    )
