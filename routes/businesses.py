from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, current_user
from models import Business, db
from forms import BusinessForm, form_errors, json_formdata
from routes.helpers import apply_fields, get_owned_or_404

businesses_bp = Blueprint('businesses', __name__, url_prefix='/businesses')

BUSINESS_FIELDS = ('name', 'address', 'phone', 'email', 'website',
                   'header_image', 'footer_image', 'seal_url')


@businesses_bp.route('', methods=['GET'])
@login_required
def list_businesses():
    businesses = Business.query.filter_by(user_id=current_user.id)\
        .order_by(Business.name.asc()).all()
    return jsonify([b.to_dict() for b in businesses])


@businesses_bp.route('', methods=['POST'])
@login_required
def create_business():
    payload = request.get_json(silent=True) or {}
    form = BusinessForm(formdata=json_formdata(payload))
    if not form.validate():
        return jsonify({'success': False, 'error': 'Invalid business data',
                        'fields': form_errors(form)}), 400

    business = Business(user_id=current_user.id)
    apply_fields(business, form, BUSINESS_FIELDS, payload)
    db.session.add(business)
    db.session.commit()
    current_app.logger.info(f"User {current_user.id} created business {business.id}")
    return jsonify(business.to_dict()), 201


@businesses_bp.route('/<int:business_id>', methods=['GET'])
@login_required
def get_business(business_id):
    return jsonify(get_owned_or_404(Business, business_id).to_dict())


@businesses_bp.route('/<int:business_id>', methods=['PATCH'])
@login_required
def update_business(business_id):
    business = get_owned_or_404(Business, business_id)
    payload = request.get_json(silent=True) or {}
    form = BusinessForm(formdata=json_formdata(payload, base=business.to_dict()))
    if not form.validate():
        return jsonify({'success': False, 'error': 'Invalid business data',
                        'fields': form_errors(form)}), 400

    apply_fields(business, form, BUSINESS_FIELDS, payload)
    db.session.commit()
    return jsonify(business.to_dict())


@businesses_bp.route('/<int:business_id>', methods=['DELETE'])
@login_required
def delete_business(business_id):
    business = get_owned_or_404(Business, business_id)
    # Drafts keep existing with no business selected
    db.session.delete(business)
    db.session.commit()
    return jsonify({'success': True})
