from flask import abort
from flask_login import current_user

from models import db


def get_owned_or_404(model, record_id):
    """Fetch a record owned by the current user. Other users' records are 404."""
    record = db.session.get(model, record_id)
    if record is None or record.user_id != current_user.id:
        abort(404, description=f'{model.__name__} not found')
    return record


def apply_fields(record, form, fields, payload):
    """Copy the validated form values for the keys present in a JSON payload."""
    for name in fields:
        if name in payload:
            value = form[name].data
            setattr(record, name, value.strip() if isinstance(value, str) and value.strip() else None)
