"""Database and token extensions shared by the models and the API."""

from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate

db = SQLAlchemy()
jwt = JWTManager()
migrate = Migrate()


@jwt.unauthorized_loader
def missing_token(reason):
    return jsonify({'error': 'Authentication required', 'detail': reason}), 401


@jwt.invalid_token_loader
def invalid_token(reason):
    return jsonify({'error': 'Invalid token', 'detail': reason}), 401


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_payload):
    return jsonify({'error': 'Token has expired'}), 401


def init_db(app):
    """Initialize database extensions."""
    db.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)
