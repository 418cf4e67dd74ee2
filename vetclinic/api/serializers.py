from __future__ import annotations

from .dispatch import clinic


def pets_json(pets) -> list[dict]:
    links = clinic.pet_owners.members_by_key(p.id for p in pets)
    return [{**p.to_dict(), "owner_ids": links[p.id]} for p in pets]


def pet_json(pet) -> dict | None:
    return pets_json([pet])[0] if pet is not None else None


def owners_json(owners) -> list[dict]:
    links = clinic.owner_pets.members_by_key(o.id for o in owners)
    return [{**o.to_dict(), "pet_ids": links[o.id]} for o in owners]


def owner_json(owner) -> dict | None:
    return owners_json([owner])[0] if owner is not None else None


def details_json(details: dict) -> dict:
    return {
        "pet": pet_json(details["pet"]),
        "owners": [o.to_dict() for o in details["owners"]],
        "visits": [v.to_dict() for v in details["visits"]],
    }
