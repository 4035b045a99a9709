from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from models import Recipient, db
from forms import RecipientForm, form_errors, json_formdata
from routes.helpers import apply_fields, get_owned_or_404

recipients_bp = Blueprint('recipients', __name__, url_prefix='/recipients')

RECIPIENT_FIELDS = ('name', 'contact_person', 'address', 'email', 'phone')


@recipients_bp.route('', methods=['GET'])
@login_required
def list_recipients():
    recipients = Recipient.query.filter_by(user_id=current_user.id)\
        .order_by(Recipient.name.asc()).all()
    return jsonify([r.to_dict() for r in recipients])


@recipients_bp.route('', methods=['POST'])
@login_required
def create_recipient():
    payload = request.get_json(silent=True) or {}
    form = RecipientForm(formdata=json_formdata(payload))
    if not form.validate():
        return jsonify({'success': False, 'error': 'Invalid recipient data',
                        'fields': form_errors(form)}), 400

    recipient = Recipient(user_id=current_user.id)
    apply_fields(recipient, form, RECIPIENT_FIELDS, payload)
    db.session.add(recipient)
    db.session.commit()
    return jsonify(recipient.to_dict()), 201


@recipients_bp.route('/<int:recipient_id>', methods=['GET'])
@login_required
def get_recipient(recipient_id):
    return jsonify(get_owned_or_404(Recipient, recipient_id).to_dict())


@recipients_bp.route('/<int:recipient_id>', methods=['PATCH'])
@login_required
def update_recipient(recipient_id):
    recipient = get_owned_or_404(Recipient, recipient_id)
    payload = request.get_json(silent=True) or {}
    form = RecipientForm(formdata=json_formdata(payload, base=recipient.to_dict()))
    if not form.validate():
        return jsonify({'success': False, 'error': 'Invalid recipient data',
                        'fields': form_errors(form)}), 400

    apply_fields(recipient, form, RECIPIENT_FIELDS, payload)
    db.session.commit()
    return jsonify(recipient.to_dict())


@recipients_bp.route('/<int:recipient_id>', methods=['DELETE'])
@login_required
def delete_recipient(recipient_id):
    recipient = get_owned_or_404(Recipient, recipient_id)
    db.session.delete(recipient)
    db.session.commit()
    return jsonify({'success': True})
