from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import DateField, IntegerField, StringField
from wtforms.validators import (DataRequired, InputRequired, Length,
                                NumberRange, Optional, ValidationError)

from ..errors import ValidationError as InvalidInput
from ..validation import ISO_DATE_RE


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def iso_date(form, field):
    raw = (field.raw_data or [""])[0]
    if raw and not ISO_DATE_RE.match(str(raw).strip()):
        raise ValidationError("must be YYYY-MM-DD")


class ApiForm(FlaskForm):
    class Meta:
        csrf = False

    @classmethod
    def from_values(cls, values: dict):
        """Build from plain input; lists and ``None`` are not form fields."""
        formdata = MultiDict(
            (k, str(v)) for k, v in values.items()
            if v is not None and not isinstance(v, (list, tuple, dict))
        )
        return cls(formdata=formdata)

    def cleaned(self) -> dict:
        if not self.validate():
            errors = [
                f"{name}: {message}"
                for name, messages in self.errors.items()
                for message in messages
            ]
            raise InvalidInput(errors)
        return {name: field.data for name, field in self._fields.items()}


class OwnerForm(ApiForm):
    first_name = StringField("First name", filters=[_strip], validators=[DataRequired(), Length(max=120)])
    last_name = StringField("Last name", filters=[_strip], validators=[DataRequired(), Length(max=120)])
    age = IntegerField("Age", validators=[InputRequired(), NumberRange(min=0, max=140)])
    phone = StringField("Phone", filters=[_strip], validators=[Optional(), Length(max=40)])


class PetForm(ApiForm):
    name = StringField("Name", filters=[_strip], validators=[DataRequired(), Length(max=120)])
    age = IntegerField("Age", validators=[InputRequired(), NumberRange(min=0)])
    species = StringField("Species", filters=[_strip], validators=[DataRequired(), Length(max=80)])
    birth_date = DateField("Birth date", format="%Y-%m-%d", validators=[iso_date, DataRequired()])
    condition = StringField("Condition", filters=[_strip], validators=[Optional(), Length(max=120)])


class VisitForm(ApiForm):
    pet_id = IntegerField("Pet", validators=[InputRequired(), NumberRange(min=1)])
    date = DateField("Date", format="%Y-%m-%d", validators=[iso_date, DataRequired()])
    diagnosis = StringField("Diagnosis", filters=[_strip], validators=[DataRequired()])
    treatment = StringField("Treatment", filters=[_strip], validators=[DataRequired()])
