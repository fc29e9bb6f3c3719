"""Flask application factory for the resume and cover letter generation API."""
import os
from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import logging
from typing import Optional, Tuple

from utils.config import get_app_config
from utils.logging import configure_logging


def create_app(config_override: Optional[dict] = None, executor=None, notifier=None,
               client_factory=None, retry_policy=None, ledger=None) -> Tuple[Flask, SocketIO]:
    """Create and configure Flask application using application factory pattern.

    Args:
        config_override: Optional Flask configuration overrides for testing
        executor: Executor for generation jobs (defaults to a thread pool)
        notifier: Notification sink (defaults to Socket.IO rooms)
        client_factory: Callable mapping a provider name to its client
        retry_policy: Backoff policy for provider calls
        ledger: Credit ledger

    Returns:
        Tuple of (Flask app instance, SocketIO instance)
    """
    app = Flask(__name__)

    config = get_app_config()
    app.config['APP_CONFIG'] = config

    app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URL', 'sqlite:///resume_forge.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'your-jwt-secret-key-change-in-production')
    app.config['JWT_ALGORITHM'] = 'HS256'
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'your-secret-key-change-in-production')

    app.config['BILLING_WEBHOOK_SECRET'] = os.getenv('BILLING_WEBHOOK_SECRET')
    app.config['SOCKETIO_ASYNC_MODE'] = os.getenv('SOCKETIO_ASYNC_MODE', 'threading')

    # Overrides win over environment defaults (used by tests)
    if config_override:
        app.config.update(config_override)

    CORS(app, origins=list(config.allowed_origins), supports_credentials=True)

    configure_logging()

    init_database(app)

    socketio = SocketIO(
        app,
        cors_allowed_origins=list(config.allowed_origins),
        async_mode=app.config['SOCKETIO_ASYNC_MODE'],
        logger=False,
        engineio_logger=False
    )

    init_generation(app, socketio, executor, notifier, client_factory, retry_policy, ledger)

    register_blueprints(app)

    register_socketio_handlers(socketio)

    register_error_handlers(app)

    return app, socketio


def init_database(app: Flask) -> None:
    """Initialize database extensions and create tables."""
    from models import init_db, db
    # Imported for their table definitions
    from models import cover_letter, resume, subscription, user  # noqa: F401

    init_db(app)
    with app.app_context():
        db.create_all()

    logging.info("Database initialized successfully")


def init_generation(app: Flask, socketio: SocketIO, executor=None, notifier=None,
                    client_factory=None, retry_policy=None, ledger=None) -> None:
    """Wire the credit ledger and job runner into ``app.extensions``."""
    from resume_forge.services.credit_ledger import CreditLedger
    from resume_forge.services.job_runner import JobRunner
    from resume_forge.services.notifications import SocketIONotificationSink
    from resume_forge.services.retry import RetryPolicy

    worker = app.config['APP_CONFIG'].worker
    ledger = ledger or CreditLedger()

    runner = JobRunner(
        app,
        executor=executor,
        notifier=notifier or SocketIONotificationSink(socketio),
        ledger=ledger,
        client_factory=client_factory,
        retry_policy=retry_policy or RetryPolicy(
            base_delay=worker.retry_base_delay,
            max_delay=worker.retry_max_delay,
        ),
        max_workers=worker.max_workers,
    )

    app.extensions['credit_ledger'] = ledger
    app.extensions['job_runner'] = runner
    app.extensions['client_factory'] = client_factory

    logging.info(f"Generation runner started with {worker.max_workers} worker(s)")


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    # Import blueprints here to avoid circular imports
    from resume_forge.api.health import bp as health_bp
    from resume_forge.api.account import bp as account_bp
    from resume_forge.api.resumes import bp as resumes_bp
    from resume_forge.api.cover_letters import bp as cover_letters_bp
    from resume_forge.api.billing import bp as billing_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(account_bp, url_prefix='/me')
    app.register_blueprint(resumes_bp, url_prefix='/resumes')
    app.register_blueprint(cover_letters_bp, url_prefix='/cover-letters')
    app.register_blueprint(billing_bp, url_prefix='/billing')


def register_socketio_handlers(socketio: SocketIO) -> None:
    """Register WebSocket event handlers."""
    from resume_forge.sockets.artifact_updates import init_artifact_update_handlers
    init_artifact_update_handlers(socketio)
    logging.info("Artifact update WebSocket handlers registered")


def register_error_handlers(app: Flask) -> None:
    """Register global error handlers."""
    from flask import jsonify
    from werkzeug.exceptions import HTTPException
    from utils.exceptions import (
        ConfigurationError,
        GenerationConflictError,
        InsufficientCreditsError,
        InvalidRequestError,
        InvalidTransitionError,
        ProviderError,
        StaleRecordError,
    )

    @app.errorhandler(InvalidRequestError)
    def handle_invalid_request(error):
        return jsonify({'error': str(error)}), 400

    @app.errorhandler(InsufficientCreditsError)
    def handle_insufficient_credits(error):
        return jsonify({'error': str(error)}), 402

    @app.errorhandler(StaleRecordError)
    def handle_stale_record(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(GenerationConflictError)
    def handle_conflict(error):
        return jsonify({'error': str(error)}), 409

    @app.errorhandler(InvalidTransitionError)
    def handle_invalid_transition(error):
        return jsonify({'error': str(error)}), 409

    @app.errorhandler(ProviderError)
    def handle_provider_error(error):
        app.logger.error(f"Provider error ({error.provider}): {error}")
        return jsonify({'error': 'Generation failed, please try again'}), 502

    @app.errorhandler(ConfigurationError)
    def handle_configuration_error(error):
        app.logger.error(f"Configuration error: {error}")
        return jsonify({'error': 'Generation failed, please try again'}), 500

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Internal server error: {error}")
        return jsonify({'error': 'Internal server error'}), 500

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({'error': error.description}), error.code
