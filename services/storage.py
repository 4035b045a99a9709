"""
Supabase Storage Service for Letterhead Images

Handles uploads of header, footer and seal images. The assets bucket is
public so that stored URLs can be embedded directly in previews and
fetched by the exporters.
"""

import uuid
from supabase import create_client, Client
from flask import current_app

# Supabase client singleton
_supabase_client: Client = None

ALLOWED_IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}


def get_supabase_client() -> Client:
    """
    Get or create the Supabase client.
    Uses SUPABASE_URL and SUPABASE_KEY from the app config.
    """
    global _supabase_client

    if _supabase_client is None:
        supabase_url = current_app.config.get('SUPABASE_URL')
        supabase_key = current_app.config.get('SUPABASE_KEY')

        if not supabase_url or not supabase_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_KEY environment variables are required. "
                "Get these from your Supabase project settings."
            )

        _supabase_client = create_client(supabase_url, supabase_key)

    return _supabase_client


def file_extension(filename: str) -> str:
    if not filename or '.' not in filename:
        return ''
    return filename.rsplit('.', 1)[1].lower()


def is_allowed_image(filename: str) -> bool:
    return file_extension(filename) in ALLOWED_IMAGE_EXTENSIONS


def generate_storage_path(user_id: int, original_filename: str) -> str:
    """Unique path for an upload, grouped by owning user."""
    ext = file_extension(original_filename)
    unique_filename = f"{uuid.uuid4().hex}.{ext}" if ext else uuid.uuid4().hex
    return f"users/{user_id}/{unique_filename}"


def upload_image(user_id: int, file_data: bytes, original_filename: str, content_type: str = None) -> dict:
    """
    Upload a letterhead image to the assets bucket.

    Returns:
        dict with 'path', 'url' and 'size' keys

    Raises:
        Exception on upload failure
    """
    client = get_supabase_client()
    bucket = current_app.config.get('LETTER_ASSETS_BUCKET', 'letter-assets')
    storage_path = generate_storage_path(user_id, original_filename)

    file_options = {}
    if content_type:
        file_options['content-type'] = content_type

    client.storage.from_(bucket).upload(
        path=storage_path,
        file=file_data,
        file_options=file_options
    )
    url = client.storage.from_(bucket).get_public_url(storage_path)
    current_app.logger.info(f"Uploaded {original_filename} to {bucket}/{storage_path}")

    return {
        'path': storage_path,
        'url': url,
        'size': len(file_data)
    }
