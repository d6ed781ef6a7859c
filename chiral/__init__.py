import logging
import os
import sys

from flask import Flask
from .extensions import db, migrate
from .config import DevConfig, ProdConfig
from .errors import register_error_handlers


def _configure_logging(app):
    """Set up structured logging for production."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    ))
    level = logging.INFO if not app.debug else logging.DEBUG
    app.logger.setLevel(level)
    app.logger.addHandler(handler)
    logging.getLogger('gunicorn.error').setLevel(level)


def _ensure_schema(app):
    """Create missing tables for deployments that don't run Flask-Migrate."""
    with app.app_context():
        try:
            db.create_all()
            app.logger.info('Schema check completed')
        except Exception as e:
            db.session.rollback()
            app.logger.warning('Schema check failed: %s', e)


def create_app(config_object=None):
    app = Flask(__name__, static_folder=None)

    if config_object is None:
        config_object = ProdConfig if os.environ.get('FLASK_ENV') == 'production' else DevConfig
    app.config.from_object(config_object)

    _configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so they are registered with SQLAlchemy (needed for migrations)
    from . import models  # noqa: F401

    if app.config.get('AUTO_CREATE_SCHEMA'):
        _ensure_schema(app)

    from flask_cors import CORS
    CORS(app, origins=app.config['CLIENT_URL'])

    register_error_handlers(app)

    from .api import register_blueprints
    register_blueprints(app)

    return app
