from ..extensions import db


class Ownership(db.Model):
    """One owner/pet pairing; the composite key keeps each pair unique."""

    __tablename__ = "ownerships"

    owner_id = db.Column(
        db.Integer,
        db.ForeignKey("owners.id", ondelete="CASCADE"),
        primary_key=True,
    )
    pet_id = db.Column(
        db.Integer,
        db.ForeignKey("pets.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
