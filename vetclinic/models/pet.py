from datetime import datetime, timezone

from sqlalchemy import CheckConstraint
from sqlalchemy.orm import validates

from ..extensions import db
from ..validation import check_int_range, parse_iso_date, require_text

DEFAULT_CONDITION = "Healthy"


class Pet(db.Model):
    __tablename__ = "pets"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False, index=True)
    age = db.Column(db.Integer, nullable=False)
    species = db.Column(db.String(80), nullable=False, index=True)
    birth_date = db.Column(db.Date, nullable=False)
    condition = db.Column(db.String(120), nullable=False, default=DEFAULT_CONDITION)

    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        CheckConstraint("age >= 0", name="ck_pet_age_non_negative"),
    )

    @validates("name", "species")
    def _val_required(self, key, value):
        return require_text(value, key)

    @validates("age")
    def _val_age(self, key, value):
        return check_int_range(value, key, 0)

    @validates("birth_date")
    def _val_birth_date(self, key, value):
        return parse_iso_date(value, key)

    @validates("condition")
    def _val_condition(self, key, value):
        return (value or "").strip() or DEFAULT_CONDITION

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "species": self.species,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
            "condition": self.condition,
        }

    def __repr__(self):
        return f"<Pet id={self.id} name={self.name!r} species={self.species!r}>"
