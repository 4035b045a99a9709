from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import StringField, PasswordField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, Optional, URL


def json_formdata(payload, base=None):
    """
    Build form data from a JSON body.

    With a base dict (the record's current values) the payload is merged
    over it, so a PATCH validates the record as it will be saved.
    """
    merged = dict(base or {})
    merged.update(payload or {})
    return MultiDict({
        key: '' if value is None else str(value)
        for key, value in merged.items()
        if not isinstance(value, (dict, list))
    })


def form_errors(form):
    """First error per field, for JSON error responses."""
    return {name: errors[0] for name, errors in form.errors.items() if errors}


class RegistrationForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    name = StringField('Name', validators=[DataRequired(), Length(max=120)])
    phone = StringField('Phone Number', validators=[Optional(), Length(max=20)])
    password = PasswordField('Password', validators=[
        DataRequired(), Length(min=8, message='Password must be at least 8 characters')
    ])


class LoginForm(FlaskForm):
    email = StringField('Email', validators=[
        DataRequired(message='Please enter your email')
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Please enter your password')
    ])


class BusinessForm(FlaskForm):
    name = StringField('Business Name', validators=[DataRequired(), Length(max=200)])
    address = TextAreaField('Address', validators=[DataRequired()])
    phone = StringField('Phone', validators=[Optional(), Length(max=40)])
    email = StringField('Email', validators=[Optional(), Email()])
    website = StringField('Website', validators=[Optional(), URL(require_tld=False)])
    header_image = StringField('Header Image URL', validators=[Optional(), Length(max=1024)])
    footer_image = StringField('Footer Image URL', validators=[Optional(), Length(max=1024)])
    seal_url = StringField('Seal Image URL', validators=[Optional(), Length(max=1024)])


class RecipientForm(FlaskForm):
    name = StringField('Recipient Name', validators=[DataRequired(), Length(max=200)])
    contact_person = StringField('Contact Person', validators=[Optional(), Length(max=200)])
    address = TextAreaField('Address', validators=[DataRequired()])
    email = StringField('Email', validators=[Optional(), Email()])
    phone = StringField('Phone', validators=[Optional(), Length(max=40)])
