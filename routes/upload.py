from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, current_user
from werkzeug.utils import secure_filename

from services import storage

upload_bp = Blueprint('upload', __name__)


@upload_bp.route('/upload', methods=['POST'])
@login_required
def upload():
    file = request.files.get('file')
    if not file or not file.filename:
        return jsonify({'success': False, 'error': 'No file provided'}), 400

    filename = secure_filename(file.filename)
    if not storage.is_allowed_image(filename):
        allowed = ', '.join(sorted(storage.ALLOWED_IMAGE_EXTENSIONS))
        return jsonify({'success': False, 'error': f'Only image files are allowed ({allowed})'}), 400

    file_data = file.read()
    if not file_data:
        return jsonify({'success': False, 'error': 'File is empty'}), 400
    max_bytes = current_app.config.get('MAX_UPLOAD_BYTES', 5 * 1024 * 1024)
    if len(file_data) > max_bytes:
        return jsonify({'success': False, 'error': 'File is too large'}), 400

    try:
        result = storage.upload_image(current_user.id, file_data, filename, file.content_type)
    except Exception as e:
        current_app.logger.error(f"Upload failed for user {current_user.id}: {e}")
        return jsonify({'success': False, 'error': 'Upload failed'}), 502

    return jsonify({'url': result['url']}), 201
