from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator

from sqlalchemy import delete, func, or_, select

from ..errors import (
    BusinessRuleError,
    NotFoundError,
    ReferenceMissingError,
    ValidationError,
)
from ..extensions import db
from ..models.owner import Owner
from ..models.ownership import Ownership
from ..models.pet import Pet
from ..models.visit import Visit
from ..validation import parse_iso_date
from .links import OwnershipLinks, normalize_ids

log = logging.getLogger(__name__)

OWNER_FIELDS = ("first_name", "last_name", "age", "phone")
PET_FIELDS = ("name", "age", "species", "birth_date", "condition")
VISIT_FIELDS = ("pet_id", "date", "diagnosis", "treatment")

AUTOCOMPLETE_FIELDS = {
    "owner": "owner",
    "dueno": "owner",
    "pet": "pet",
    "mascota": "pet",
    "species": "species",
    "especie": "species",
}


def clamp_limit(raw, default: int = 10, low: int = 5, high: int = 20) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = default
    return min(high, max(low, value))


class ClinicService:
    """Owners, pets, visits and the owner/pet pairings between them.

    Writes that touch an entity row and its pairings run in one transaction;
    any failure rolls the whole unit back.
    """

    def __init__(self) -> None:
        self.pet_owners = OwnershipLinks.of_pet()
        self.owner_pets = OwnershipLinks.of_owner()

    @contextmanager
    def _write(self) -> Iterator[None]:
        try:
            yield
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    @staticmethod
    def _require_existing(model, ids: list[int], label: str) -> None:
        if not ids:
            return
        found = set(db.session.execute(select(model.id).where(model.id.in_(ids))).scalars())
        missing = [i for i in ids if i not in found]
        if missing:
            raise ReferenceMissingError(
                f"{label} not found: {', '.join(str(i) for i in missing)}"
            )

    @staticmethod
    def _apply(obj, fields: dict, allowed: Iterable[str]) -> None:
        for key in allowed:
            if key in fields:
                setattr(obj, key, fields[key])

    # ---- owners ----

    def create_owner(self, owner: Owner, pet_ids=None) -> int:
        ids = normalize_ids(pet_ids) or []
        with self._write():
            db.session.add(owner)
            db.session.flush()
            self._require_existing(Pet, ids, "pet")
            self.owner_pets.add(owner.id, ids)
        log.info("Created owner %s with pets %s", owner.id, ids)
        return owner.id

    def get_owner(self, owner_id: int) -> Owner | None:
        return db.session.get(Owner, owner_id)

    def list_owners(self) -> list[Owner]:
        return Owner.query.order_by(Owner.first_name, Owner.last_name).all()

    def search_owners(self, q: str) -> list[Owner]:
        q = (q or "").strip().lower()
        if not q:
            return []
        full = Owner.first_name + " " + Owner.last_name
        return (
            Owner.query.filter(
                or_(
                    func.lower(Owner.first_name).contains(q, autoescape=True),
                    func.lower(Owner.last_name).contains(q, autoescape=True),
                    func.lower(full).contains(q, autoescape=True),
                )
            )
            .order_by(Owner.first_name, Owner.last_name)
            .all()
        )

    def update_owner(self, owner_id: int, fields: dict, pet_ids=None) -> Owner:
        """Update an owner; ``pet_ids=None`` leaves its pets untouched,
        any list (even empty) replaces them."""
        owner = self.get_owner(owner_id)
        if owner is None:
            raise NotFoundError("owner not found")
        ids = normalize_ids(pet_ids)
        with self._write():
            self._apply(owner, fields, OWNER_FIELDS)
            if ids is not None:
                self._require_existing(Pet, ids, "pet")
                self.owner_pets.set(owner.id, ids)
        log.info("Updated owner %s (pets %s)", owner_id, "kept" if ids is None else ids)
        return owner

    def delete_owner(self, owner_id: int) -> bool:
        with self._write():
            result = db.session.execute(delete(Owner).where(Owner.id == owner_id))
        log.info("Deleted owner %s: %s", owner_id, result.rowcount > 0)
        return result.rowcount > 0

    def pets_for_owner(self, owner_id: int) -> list[Pet]:
        return (
            Pet.query.join(Ownership, Ownership.pet_id == Pet.id)
            .filter(Ownership.owner_id == owner_id)
            .order_by(Pet.name)
            .all()
        )

    def pet_ids_for_owner(self, owner_id: int) -> list[int]:
        return self.owner_pets.members(owner_id)

    # ---- pets ----

    def create_pet(self, pet: Pet, owner_ids=None) -> int:
        ids = normalize_ids(owner_ids) or []
        with self._write():
            db.session.add(pet)
            db.session.flush()
            self._require_existing(Owner, ids, "owner")
            self.pet_owners.add(pet.id, ids)
        log.info("Created pet %s with owners %s", pet.id, ids)
        return pet.id

    def get_pet(self, pet_id: int) -> Pet | None:
        return db.session.get(Pet, pet_id)

    def list_pets(self) -> list[Pet]:
        return Pet.query.order_by(Pet.name, Pet.id).all()

    def pets_by_species(self, species: str) -> list[Pet]:
        q = (species or "").strip().lower()
        if not q:
            return []
        return (
            Pet.query.filter(func.lower(Pet.species).contains(q, autoescape=True))
            .order_by(Pet.name)
            .all()
        )

    def update_pet(self, pet_id: int, fields: dict, owner_ids=None) -> Pet:
        """Update a pet; ``owner_ids=None`` leaves its owners untouched,
        any list (even empty) replaces them."""
        pet = self.get_pet(pet_id)
        if pet is None:
            raise NotFoundError("pet not found")
        ids = normalize_ids(owner_ids)
        with self._write():
            self._apply(pet, fields, PET_FIELDS)
            if ids is not None:
                self._require_existing(Owner, ids, "owner")
                self.pet_owners.set(pet.id, ids)
        log.info("Updated pet %s (owners %s)", pet_id, "kept" if ids is None else ids)
        return pet

    def delete_pet(self, pet_id: int) -> bool:
        # pairings and visits go with it through ON DELETE CASCADE
        with self._write():
            result = db.session.execute(delete(Pet).where(Pet.id == pet_id))
        log.info("Deleted pet %s: %s", pet_id, result.rowcount > 0)
        return result.rowcount > 0

    def owners_for_pet(self, pet_id: int) -> list[Owner]:
        return (
            Owner.query.join(Ownership, Ownership.owner_id == Owner.id)
            .filter(Ownership.pet_id == pet_id)
            .order_by(Owner.first_name, Owner.last_name)
            .all()
        )

    def owner_ids_for_pet(self, pet_id: int) -> list[int]:
        return self.pet_owners.members(pet_id)

    def relation(self, pet_id: int, owner_id: int) -> tuple[Owner, Pet] | None:
        if not OwnershipLinks.exists(owner_id, pet_id):
            return None
        owner, pet = self.get_owner(owner_id), self.get_pet(pet_id)
        if owner is None or pet is None:
            return None
        return owner, pet

    def pet_details(self, pet_id: int) -> dict:
        pet = self.get_pet(pet_id)
        if pet is None:
            raise NotFoundError("pet not found")
        return {
            "pet": pet,
            "owners": self.owners_for_pet(pet_id),
            "visits": self.visits_for_pet(pet_id),
        }

    def search_pets(self, name: str) -> list[dict]:
        q = (name or "").strip().lower()
        if not q:
            return []
        pets = (
            Pet.query.filter(func.lower(Pet.name).contains(q, autoescape=True))
            .order_by(Pet.name, Pet.id)
            .all()
        )
        return [self.pet_details(p.id) for p in pets]

    def find_pets_by_name(self, name: str) -> list[dict]:
        q = (name or "").strip().lower()
        if not q:
            return []
        ids = db.session.execute(
            select(Pet.id).where(func.lower(Pet.name) == q).order_by(Pet.id)
        ).scalars()
        return [self.pet_details(pid) for pid in ids]

    def _owner_names_by_pet(self) -> dict[int, list[str]]:
        rows = db.session.execute(
            select(Ownership.pet_id, Owner.first_name, Owner.last_name)
            .join(Owner, Owner.id == Ownership.owner_id)
            .order_by(Owner.first_name, Owner.last_name)
        ).all()
        names: dict[int, list[str]] = {}
        for pet_id, first, last in rows:
            names.setdefault(pet_id, []).append(f"{first} {last}")
        return names

    def pets_with_last_visit(self) -> list[dict]:
        names = self._owner_names_by_pet()
        latest: dict[int, Visit] = {}
        for v in Visit.query.order_by(Visit.pet_id, Visit.date.desc(), Visit.id.desc()):
            latest.setdefault(v.pet_id, v)

        out = []
        for pet in Pet.query.order_by(Pet.name, Pet.id):
            row = pet.to_dict()
            last = latest.get(pet.id)
            row.update(
                owners=" || ".join(names.get(pet.id, [])) or None,
                last_visit_id=last.id if last else None,
                last_visit_date=last.date.isoformat() if last else None,
                last_visit_diagnosis=last.diagnosis if last else None,
                last_visit_treatment=last.treatment if last else None,
            )
            out.append(row)
        return out

    # ---- visits ----

    def create_visit(self, visit: Visit) -> int:
        with self._write():
            self._require_pet_for_visit(visit.pet_id)
            db.session.add(visit)
            db.session.flush()
        log.info("Created visit %s for pet %s", visit.id, visit.pet_id)
        return visit.id

    def update_visit(self, visit_id: int, fields: dict) -> Visit:
        visit = self.get_visit(visit_id)
        if visit is None:
            raise NotFoundError("visit not found")
        with self._write():
            self._require_pet_for_visit(fields.get("pet_id", visit.pet_id))
            self._apply(visit, fields, VISIT_FIELDS)
        log.info("Updated visit %s", visit_id)
        return visit

    @staticmethod
    def _require_pet_for_visit(pet_id) -> None:
        if pet_id is None or db.session.get(Pet, pet_id) is None:
            raise ReferenceMissingError("pet not found for visit")

    def delete_visit(self, visit_id: int) -> bool:
        with self._write():
            result = db.session.execute(delete(Visit).where(Visit.id == visit_id))
        return result.rowcount > 0

    def get_visit(self, visit_id: int) -> Visit | None:
        return db.session.get(Visit, visit_id)

    def list_visits(self) -> list[Visit]:
        return Visit.query.order_by(Visit.date.desc(), Visit.id.desc()).all()

    def visits_for_pet(self, pet_id: int) -> list[Visit]:
        return (
            Visit.query.filter_by(pet_id=pet_id)
            .order_by(Visit.date.desc(), Visit.id.desc())
            .all()
        )

    def visits_for_pet_lite(self, pet_id: int) -> list[dict]:
        return [{"id": v.id, "date": v.date.isoformat()} for v in self.visits_for_pet(pet_id)]

    def visits_on_date(self, pet_id: int, day: str) -> list[Visit]:
        when = parse_iso_date(day, "date")
        return (
            Visit.query.filter_by(pet_id=pet_id, date=when)
            .order_by(Visit.id.desc())
            .all()
        )

    # ---- export / autocomplete ----

    def export_rows(self) -> Iterator[list]:
        names = self._owner_names_by_pet()
        for pet in Pet.query.order_by(Pet.name, Pet.id):
            yield [
                pet.id,
                pet.name,
                pet.age,
                pet.species,
                pet.birth_date.isoformat(),
                pet.condition,
                "; ".join(names.get(pet.id, [])),
            ]

    def autocomplete(self, field: str, q: str, limit=10) -> list:
        q = (q or "").strip().lower()
        if not q:
            raise ValidationError("q is required")
        kind = AUTOCOMPLETE_FIELDS.get((field or "").strip().lower())
        if kind is None:
            raise BusinessRuleError("unknown field for autocomplete")
        limit = clamp_limit(limit)

        if kind == "owner":
            return [
                {"id": o.id, "label": o.full_name}
                for o in self.search_owners(q)[:limit]
            ]
        if kind == "pet":
            pets = (
                Pet.query.filter(
                    or_(
                        func.lower(Pet.name).contains(q, autoescape=True),
                        func.lower(Pet.species).contains(q, autoescape=True),
                    )
                )
                .order_by(Pet.name)
                .limit(limit)
                .all()
            )
            return [{"id": p.id, "label": p.name, "species": p.species} for p in pets]
        rows = db.session.execute(
            select(Pet.species)
            .where(func.lower(Pet.species).contains(q, autoescape=True))
            .distinct()
            .order_by(Pet.species)
            .limit(limit)
        ).scalars()
        return list(rows)
