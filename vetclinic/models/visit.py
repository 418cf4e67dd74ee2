from datetime import datetime, timezone

from sqlalchemy.orm import validates

from ..extensions import db
from ..validation import parse_iso_date, require_text


class Visit(db.Model):
    __tablename__ = "visits"

    id = db.Column(db.Integer, primary_key=True)

    pet_id = db.Column(
        db.Integer,
        db.ForeignKey("pets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    date = db.Column(db.Date, nullable=False, index=True)
    diagnosis = db.Column(db.Text, nullable=False)
    treatment = db.Column(db.Text, nullable=False)

    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    @validates("date")
    def _val_date(self, key, value):
        return parse_iso_date(value, key)

    @validates("diagnosis", "treatment")
    def _val_required(self, key, value):
        return require_text(value, key)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pet_id": self.pet_id,
            "date": self.date.isoformat() if self.date else None,
            "diagnosis": self.diagnosis,
            "treatment": self.treatment,
        }
