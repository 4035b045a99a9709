from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, current_user
from models import User, db
from forms import RegistrationForm, LoginForm, form_errors, json_formdata

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


@auth_bp.route('/register', methods=['POST'])
def register():
    form = RegistrationForm(formdata=json_formdata(request.get_json(silent=True)))
    if not form.validate():
        return jsonify({'success': False, 'error': 'Invalid registration data',
                        'fields': form_errors(form)}), 400

    email = form.email.data.strip().lower()
    if User.query.filter_by(email=email).first():
        return jsonify({'success': False, 'error': 'An account with this email already exists'}), 400

    user = User(
        email=email,
        name=form.name.data.strip(),
        phone=form.phone.data or None,
        verify_account=not current_app.config.get('REQUIRE_ACCOUNT_APPROVAL', False)
    )
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info(f"Registered user {user.email}")

    return jsonify({'success': True, 'user': user.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    form = LoginForm(formdata=json_formdata(request.get_json(silent=True)))
    if not form.validate():
        return jsonify({'success': False, 'error': 'Email and password are required',
                        'fields': form_errors(form)}), 400

    user = User.query.filter_by(email=form.email.data.strip().lower()).first()
    if not user or not user.check_password(form.password.data):
        return jsonify({'success': False, 'error': 'Invalid email or password'}), 401

    if user.is_held:
        return jsonify({'success': False, 'error': 'This account is on hold'}), 403
    if current_app.config.get('REQUIRE_ACCOUNT_APPROVAL') and not user.verify_account:
        return jsonify({'success': False, 'error': 'Your account is awaiting approval'}), 403

    user.last_login = datetime.utcnow()
    db.session.commit()

    return jsonify({'access_token': user.get_auth_token(), 'user': user.to_dict()})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify(current_user.to_dict())
