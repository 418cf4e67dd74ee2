"""Editable view over the ``ownerships`` join table.

``OwnershipLinks`` fixes one side of the pair as the key: ``of_pet()``
answers "which owners does this pet have", ``of_owner()`` the reverse.
Nothing here commits; callers wrap the calls in their own transaction.
"""

from __future__ import annotations

import re
from typing import Iterable

from sqlalchemy import delete, insert, select

from ..extensions import db
from ..models.ownership import Ownership

_ID_SEPARATORS = re.compile(r"[,;\s]+")


def normalize_ids(raw) -> list[int] | None:
    """Turn a user-supplied id list into unique positive ints.

    ``None`` stays ``None`` (field absent); an empty list stays empty
    (field present, clear everything).
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = [p for p in _ID_SEPARATORS.split(raw.strip()) if p]
    elif isinstance(raw, (int, float)):
        raw = [raw]
    out: list[int] = []
    for item in raw:
        try:
            value = int(item)
        except (TypeError, ValueError):
            continue
        if value > 0 and value not in out:
            out.append(value)
    return out


class OwnershipLinks:
    def __init__(self, key_column, member_column) -> None:
        self.key_column = key_column
        self.member_column = member_column

    @classmethod
    def of_pet(cls) -> "OwnershipLinks":
        return cls(Ownership.pet_id, Ownership.owner_id)

    @classmethod
    def of_owner(cls) -> "OwnershipLinks":
        return cls(Ownership.owner_id, Ownership.pet_id)

    def members(self, key_id: int) -> list[int]:
        rows = db.session.execute(
            select(self.member_column)
            .where(self.key_column == key_id)
            .order_by(self.member_column)
        ).scalars()
        return list(rows)

    def members_by_key(self, key_ids: Iterable[int]) -> dict[int, list[int]]:
        key_ids = list(key_ids)
        out: dict[int, list[int]] = {k: [] for k in key_ids}
        if not key_ids:
            return out
        rows = db.session.execute(
            select(self.key_column, self.member_column)
            .where(self.key_column.in_(key_ids))
            .order_by(self.key_column, self.member_column)
        ).all()
        for key, member in rows:
            out[key].append(member)
        return out

    def add(self, key_id: int, member_ids: Iterable[int]) -> None:
        rows = [self._row(key_id, m) for m in dict.fromkeys(member_ids)]
        if rows:
            db.session.execute(insert(Ownership), rows)

    def set(self, key_id: int, member_ids: Iterable[int]) -> None:
        """Replace every pairing of ``key_id`` with exactly ``member_ids``."""
        db.session.execute(delete(Ownership).where(self.key_column == key_id))
        self.add(key_id, member_ids)

    def _row(self, key_id: int, member_id: int) -> dict:
        return {self.key_column.key: key_id, self.member_column.key: member_id}

    @staticmethod
    def exists(owner_id: int, pet_id: int) -> bool:
        q = select(Ownership.owner_id).where(
            Ownership.owner_id == owner_id, Ownership.pet_id == pet_id
        )
        return db.session.execute(q).first() is not None
