import json
import os


def _env_bool(name, default='False'):
    return os.getenv(name, default).lower() == 'true'


def _env_json(name):
    raw = os.getenv(name)
    if not raw:
        return None
    return json.loads(raw)


class Config:
    # Environment
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')

    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///letters.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JSON API, no browser forms
    WTF_CSRF_ENABLED = False

    # Bearer tokens (seconds)
    TOKEN_MAX_AGE = int(os.getenv('TOKEN_MAX_AGE', 60 * 60 * 24 * 7))

    # New accounts must be approved by an admin before they can log in
    REQUIRE_ACCOUNT_APPROVAL = _env_bool('REQUIRE_ACCOUNT_APPROVAL')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Supabase Storage for uploaded letterhead images
    SUPABASE_URL = os.getenv('SUPABASE_URL')
    SUPABASE_KEY = os.getenv('SUPABASE_KEY')
    LETTER_ASSETS_BUCKET = os.getenv('LETTER_ASSETS_BUCKET', 'letter-assets')
    MAX_UPLOAD_BYTES = int(os.getenv('MAX_UPLOAD_BYTES', 5 * 1024 * 1024))

    # Letter rendering
    PUBLIC_BASE_URL = os.getenv('PUBLIC_BASE_URL')
    IMAGE_FETCH_TIMEOUT = float(os.getenv('IMAGE_FETCH_TIMEOUT', 10))
    LETTER_SANITIZE_HTML = _env_bool('LETTER_SANITIZE_HTML')
    LETTER_DEFAULT_LAYOUT = _env_json('LETTER_DEFAULT_LAYOUT')


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    REQUIRE_ACCOUNT_APPROVAL = False
    PUBLIC_BASE_URL = 'http://letters.test/'
    LETTER_SANITIZE_HTML = False
    LETTER_DEFAULT_LAYOUT = None
