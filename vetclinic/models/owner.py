from datetime import datetime, timezone

from sqlalchemy import CheckConstraint
from sqlalchemy.orm import validates

from ..extensions import db
from ..validation import check_int_range, require_text


class Owner(db.Model):
    __tablename__ = "owners"

    id = db.Column(db.Integer, primary_key=True)

    first_name = db.Column(db.String(120), nullable=False, index=True)
    last_name = db.Column(db.String(120), nullable=False, index=True)
    age = db.Column(db.Integer, nullable=False)
    phone = db.Column(db.String(40), nullable=True)

    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        CheckConstraint("age >= 0 AND age <= 140", name="ck_owner_age_range"),
    )

    @validates("first_name", "last_name")
    def _val_name(self, key, value):
        return require_text(value, key)

    @validates("age")
    def _val_age(self, key, value):
        return check_int_range(value, key, 0, 140)

    @validates("phone")
    def _val_phone(self, key, value):
        v = (value or "").strip()
        return v or None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "age": self.age,
            "phone": self.phone,
        }

    def __repr__(self):
        return f"<Owner id={self.id} name={self.full_name!r}>"
