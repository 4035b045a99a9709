from flask import Blueprint, Response, current_app, jsonify, request
from flask_login import login_required, current_user
from sqlalchemy import or_

from models import Business, Draft, Recipient, DRAFT_STATUSES, db
from routes.helpers import get_owned_or_404
from services.letters import (
    DEFAULT_LAYOUT,
    ExportError,
    ImageLoader,
    LayoutConfig,
    LayoutError,
    LetterAssembler,
    MissingReferenceError,
    preview_scale,
)
from utils import parse_date

drafts_bp = Blueprint('drafts', __name__, url_prefix='/drafts')

TEXT_FIELDS = ('ref_no', 'subject', 'content')


class DraftValidationError(ValueError):
    pass


def get_assembler():
    """LetterAssembler configured for the current app and request."""
    config = current_app.config
    base_url = config.get('PUBLIC_BASE_URL') or request.host_url
    loader = ImageLoader(base_url=base_url, timeout=config.get('IMAGE_FETCH_TIMEOUT', 10))
    return LetterAssembler(
        default_layout=config.get('LETTER_DEFAULT_LAYOUT') or DEFAULT_LAYOUT,
        base_url=base_url,
        sanitize_html=config.get('LETTER_SANITIZE_HTML', False),
        image_loader=loader,
    )


def _owned_reference(model, value):
    if value in (None, ''):
        return None
    try:
        record_id = int(value)
    except (TypeError, ValueError):
        raise DraftValidationError(f'{model.__name__.lower()}_id must be an integer')
    record = db.session.get(model, record_id)
    if record is None or record.user_id != current_user.id:
        raise DraftValidationError(f'{model.__name__} not found')
    return record.id


def apply_draft_payload(draft, payload):
    """
    Apply a (partial) JSON payload to a draft.

    Raises:
        DraftValidationError: On any invalid field. Nothing is applied.
    """
    changes = {}

    for name in TEXT_FIELDS:
        if name in payload:
            value = payload[name]
            if value is not None and not isinstance(value, str):
                raise DraftValidationError(f'{name} must be a string')
            changes[name] = value

    if 'date' in payload:
        try:
            changes['date'] = parse_date(payload['date'])
        except (TypeError, ValueError):
            raise DraftValidationError('date must be an ISO date (YYYY-MM-DD)')

    if 'business_id' in payload:
        changes['business_id'] = _owned_reference(Business, payload['business_id'])
    if 'recipient_id' in payload:
        changes['recipient_id'] = _owned_reference(Recipient, payload['recipient_id'])

    if 'include_seal' in payload:
        if not isinstance(payload['include_seal'], bool):
            raise DraftValidationError('include_seal must be true or false')
        changes['include_seal'] = payload['include_seal']

    if 'status' in payload:
        status = str(payload['status'] or '').upper()
        if status not in DRAFT_STATUSES:
            raise DraftValidationError(f"status must be one of {', '.join(DRAFT_STATUSES)}")
        changes['status'] = status

    if 'layout' in payload:
        layout = payload['layout']
        if layout is not None:
            try:
                LayoutConfig.from_dict(layout)
            except LayoutError as e:
                raise DraftValidationError(f'Invalid layout: {e}')
        changes['layout'] = layout

    for name, value in changes.items():
        setattr(draft, name, value)


@drafts_bp.route('', methods=['GET'])
@login_required
def list_drafts():
    query = Draft.query.filter_by(user_id=current_user.id)

    status = request.args.get('status', '').upper()
    if status:
        if status not in DRAFT_STATUSES:
            return jsonify({'success': False, 'error': f'Unknown status: {status}'}), 400
        query = query.filter(Draft.status == status)

    q = request.args.get('q', '').strip()
    if q:
        pattern = f'%{q}%'
        query = query.outerjoin(Recipient, Draft.recipient_id == Recipient.id).filter(or_(
            Draft.subject.ilike(pattern),
            Draft.ref_no.ilike(pattern),
            Draft.content.ilike(pattern),
            Recipient.name.ilike(pattern),
        ))

    drafts = query.order_by(Draft.updated_at.desc(), Draft.id.desc()).all()
    return jsonify([d.to_dict(populate=True) for d in drafts])


@drafts_bp.route('', methods=['POST'])
@login_required
def create_draft():
    payload = request.get_json(silent=True) or {}
    draft = Draft(user_id=current_user.id, status='DRAFT', include_seal=False)
    try:
        apply_draft_payload(draft, payload)
    except DraftValidationError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    db.session.add(draft)
    db.session.commit()
    current_app.logger.info(f"User {current_user.id} created draft {draft.id}")
    return jsonify(draft.to_dict(populate=True)), 201


@drafts_bp.route('/<int:draft_id>', methods=['GET'])
@login_required
def get_draft(draft_id):
    draft = get_owned_or_404(Draft, draft_id)
    return jsonify(draft.to_dict(populate=True))


@drafts_bp.route('/<int:draft_id>', methods=['PATCH'])
@login_required
def update_draft(draft_id):
    draft = get_owned_or_404(Draft, draft_id)
    if draft.is_final:
        return jsonify({'success': False, 'error': 'Draft is final and can no longer be edited'}), 409

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({'success': False, 'error': 'Expected a JSON object'}), 400

    try:
        apply_draft_payload(draft, payload)
    except DraftValidationError as e:
        db.session.rollback()
        return jsonify({'success': False, 'error': str(e)}), 400

    db.session.commit()
    return jsonify(draft.to_dict(populate=True))


@drafts_bp.route('/<int:draft_id>', methods=['DELETE'])
@login_required
def delete_draft(draft_id):
    draft = get_owned_or_404(Draft, draft_id)
    db.session.delete(draft)
    db.session.commit()
    return jsonify({'success': True})


@drafts_bp.route('/<int:draft_id>/clone', methods=['POST'])
@login_required
def clone_draft(draft_id):
    draft = get_owned_or_404(Draft, draft_id)
    copy = draft.clone()
    db.session.add(copy)
    db.session.commit()
    current_app.logger.info(f"Draft {draft.id} cloned to {copy.id}")
    return jsonify(copy.to_dict(populate=True)), 201


@drafts_bp.route('/<int:draft_id>/finalize', methods=['POST'])
@login_required
def finalize_draft(draft_id):
    draft = get_owned_or_404(Draft, draft_id)
    if draft.is_final:
        return jsonify({'success': False, 'error': 'Draft is already final'}), 409
    if draft.business is None or draft.recipient is None:
        missing = 'Business' if draft.business is None else 'Recipient'
        return jsonify({'success': False,
                        'error': f'Draft has no {missing} selected. Please edit and select a {missing.lower()}.'}), 422

    draft.status = 'FINAL'
    db.session.commit()
    current_app.logger.info(f"Draft {draft.id} finalized")
    return jsonify(draft.to_dict(populate=True))


@drafts_bp.route('/<int:draft_id>/layout', methods=['DELETE'])
@login_required
def reset_draft_layout(draft_id):
    draft = get_owned_or_404(Draft, draft_id)
    if draft.is_final:
        return jsonify({'success': False, 'error': 'Draft is final and can no longer be edited'}), 409
    draft.layout = None
    db.session.commit()
    return jsonify(draft.to_dict(populate=True))


def _build(draft):
    assembler = get_assembler()
    letter = assembler.build_letter(draft, draft.business, draft.recipient)
    layout = assembler.resolve_layout(draft.layout)
    return assembler, letter, layout


@drafts_bp.route('/<int:draft_id>/preview', methods=['GET'])
@login_required
def preview_draft(draft_id):
    draft = get_owned_or_404(Draft, draft_id)
    customizing = request.args.get('customize', '0').lower() in ('1', 'true', 'yes')

    scale = 1.0
    width = request.args.get('width')
    if width:
        try:
            scale = preview_scale(float(width))
        except ValueError:
            return jsonify({'success': False, 'error': 'width must be a number'}), 400

    try:
        assembler, letter, layout = _build(draft)
    except MissingReferenceError as e:
        return jsonify({'success': False, 'error': str(e)}), 422
    except LayoutError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    html = assembler.render_html(letter, layout, customizing=customizing, scale=scale)
    return Response(html, mimetype='text/html')


@drafts_bp.route('/<int:draft_id>/export.pdf', methods=['GET'])
@login_required
def export_pdf(draft_id):
    draft = get_owned_or_404(Draft, draft_id)
    try:
        assembler, letter, layout = _build(draft)
        result = assembler.export_pdf(letter, layout)
    except MissingReferenceError as e:
        return jsonify({'success': False, 'error': str(e)}), 422
    except LayoutError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except ExportError as e:
        current_app.logger.error(f"PDF export failed for draft {draft.id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500

    return Response(
        result.data,
        mimetype=result.mimetype,
        headers={
            "Content-Disposition": f"attachment; filename={result.filename}",
            "X-Page-Count": str(result.page_count),
        }
    )


@drafts_bp.route('/<int:draft_id>/export.docx', methods=['GET'])
@login_required
def export_docx(draft_id):
    draft = get_owned_or_404(Draft, draft_id)
    try:
        assembler, letter, layout = _build(draft)
        result = assembler.export_docx(letter, layout)
    except MissingReferenceError as e:
        return jsonify({'success': False, 'error': str(e)}), 422
    except LayoutError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except ExportError as e:
        current_app.logger.error(f"DOCX export failed for draft {draft.id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500

    headers = {"Content-Disposition": f"attachment; filename={result.filename}"}
    if result.warnings:
        headers["X-Export-Warning"] = ' '.join(result.warnings)
    return Response(result.data, mimetype=result.mimetype, headers=headers)
