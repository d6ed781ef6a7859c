import os
from dotenv import load_dotenv

load_dotenv()

def _fix_db_url(url):
    """Fix common DATABASE_URL issues for SQLAlchemy compatibility."""
    if not url:
        return 'sqlite:///chiral.db'
    # Heroku-style URLs use postgres:// but SQLAlchemy requires postgresql://
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url

class Config:
    SQLALCHEMY_DATABASE_URI = _fix_db_url(os.environ.get('DATABASE_URL', ''))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    AUTO_CREATE_SCHEMA = os.environ.get('AUTO_CREATE_SCHEMA', '1') == '1'
    MAX_CONTENT_LENGTH = 1024 * 1024

    # Auth
    JWT_SECRET = os.environ.get('JWT_SECRET', 'change-me')
    JWT_EXPIRES_IN_HOURS = int(os.environ.get('JWT_EXPIRES_IN_HOURS', '24'))
    BCRYPT_ROUNDS = int(os.environ.get('BCRYPT_ROUNDS', '12'))
    GOOGLE_CLIENT_ID = os.environ.get('GOOGLE_CLIENT_ID', '')
    GOOGLE_CERTS_URL = 'https://www.googleapis.com/oauth2/v3/certs'

    # Gemini
    GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY', '')
    GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.5-flash')
    GEMINI_API_URL = os.environ.get(
        'GEMINI_API_URL', 'https://generativelanguage.googleapis.com/v1beta'
    )
    GEMINI_REQUEST_TIMEOUT = int(os.environ.get('GEMINI_REQUEST_TIMEOUT', '30'))

    # dev.to
    DEV_TO_API_URL = os.environ.get('DEV_TO_API_URL', 'https://dev.to/api')
    DEV_TO_API_KEY = os.environ.get('DEV_TO_API_KEY', '')
    DEV_TO_REQUEST_TIMEOUT = int(os.environ.get('DEV_TO_REQUEST_TIMEOUT', '15'))
    WORDS_PER_MINUTE = 225

    CLIENT_URL = os.environ.get('CLIENT_URL', '*')

class DevConfig(Config):
    DEBUG = True

class ProdConfig(Config):
    DEBUG = False

class TestConfig(Config):
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    AUTO_CREATE_SCHEMA = False
    JWT_SECRET = 'test-secret'
    BCRYPT_ROUNDS = 4
    GEMINI_API_KEY = 'test-gemini-key'
    GOOGLE_CLIENT_ID = 'test-client-id.apps.googleusercontent.com'
