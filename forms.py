from flask_wtf import FlaskForm
from wtforms import DateField, IntegerField, PasswordField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, InputRequired, Length, NumberRange, Optional, ValidationError

from models import JobStatus

# Browsers send YYYY-MM-DD; JS clients may send a full ISO timestamp
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
]

# Ids are stored as signed 64-bit integers
MAX_ID = 2**63 - 1


class ApiForm(FlaskForm):
    class Meta:
        csrf = False

    def supplied(self, name):
        """True when the request carried a non-null value for ``name``."""
        raw = getattr(self, name).raw_data
        return bool(raw) and raw[0] is not None

    def first_error(self):
        for name, messages in self.errors.items():
            if messages:
                return messages[0] if isinstance(messages[0], str) else f"{name} is invalid"
        return "Invalid input"


def validate_status_value(form, field):
    if field.data and field.data.strip() not in JobStatus.choices():
        raise ValidationError("status must be one of: " + ", ".join(JobStatus.choices()))


class SignupForm(ApiForm):
    name = StringField('Name', validators=[DataRequired("All fields are required"), Length(max=100)])
    email = StringField('Email', validators=[DataRequired("All fields are required"), Email("Invalid email address"), Length(max=120)])
    password = PasswordField('Password', validators=[DataRequired("All fields are required")])


class LoginForm(ApiForm):
    email = StringField('Email', validators=[DataRequired("Email and password are required")])
    password = PasswordField('Password', validators=[DataRequired("Email and password are required")])


class OwnerForm(ApiForm):
    email = StringField('Email', validators=[DataRequired("email query param required"), Length(max=120)])
    q = StringField('Search', validators=[Optional()])
    status = StringField('Status', validators=[Optional()])

    def validate_status(self, field):
        if field.data and field.data != "All":
            validate_status_value(self, field)


class JobForm(ApiForm):
    userEmail = StringField('Owner email', validators=[DataRequired("userEmail, company, role, appliedDate required"), Length(max=120)])
    company = StringField('Company', validators=[DataRequired("userEmail, company, role, appliedDate required"), Length(max=200)])
    role = StringField('Role', validators=[DataRequired("userEmail, company, role, appliedDate required"), Length(max=200)])
    status = StringField('Status', validators=[Optional(), validate_status_value])
    appliedDate = DateField('Applied date', format=DATE_FORMATS, validators=[InputRequired("userEmail, company, role, appliedDate required")])
    notes = TextAreaField('Notes', validators=[Optional()])


class JobUpdateForm(ApiForm):
    id = IntegerField('Id', validators=[InputRequired("id is required"), NumberRange(1, MAX_ID, "id is invalid")])
    company = StringField('Company', validators=[Optional(), Length(max=200)])
    role = StringField('Role', validators=[Optional(), Length(max=200)])
    status = StringField('Status', validators=[Optional(), validate_status_value])
    appliedDate = DateField('Applied date', format=DATE_FORMATS, validators=[Optional()])
    notes = TextAreaField('Notes', validators=[Optional()])


class JobIdForm(ApiForm):
    id = IntegerField('Id', validators=[InputRequired("id is required"), NumberRange(1, MAX_ID, "id is invalid")])
