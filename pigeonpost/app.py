"""
Pigeon Post Flask Application.

Main entry point for the web application. Initializes:
- Database schema
- API routes
- Session sweeper
- JSON error handlers

Usage:
    python -m pigeonpost.app

Or with gunicorn:
    gunicorn 'pigeonpost.app:create_app()'
"""

import logging
import os
from datetime import datetime, timezone

from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy import text
from werkzeug.exceptions import HTTPException

from pigeonpost.config import config
from pigeonpost.errors import PigeonPostError, StorageError
from pigeonpost.models import init_db
from pigeonpost.models.base import SessionLocal
from pigeonpost.api import tracking_bp, admin_bp
from pigeonpost.maintenance import SessionSweeper

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(start_sweeper: bool = True) -> Flask:
    """
    Application factory for Flask.

    Args:
        start_sweeper: Whether to start the background session sweeper.
                       Set to False for testing.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = config.secret_key
    app.json.ensure_ascii = False  # Emoji go out as-is

    # Browser frontend lives on another origin
    CORS(
        app,
        resources={r'/api/*': {'origins': list(config.cors_origins)}},
        supports_credentials=True,
    )

    # Initialize database
    logger.info('Initializing database...')
    init_db()

    # Register API blueprints
    app.register_blueprint(tracking_bp)
    app.register_blueprint(admin_bp)

    if start_sweeper:
        sweeper = SessionSweeper()
        sweeper.start_background()
        app.config['SESSION_SWEEPER'] = sweeper
        logger.info(f'Session sweeper started (every {sweeper.interval}s)')
    else:
        app.config['SESSION_SWEEPER'] = None

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    @app.route('/api/health')
    def health():
        """Health check with database connectivity."""
        db_ok = True
        try:
            with SessionLocal() as session:
                session.execute(text('SELECT 1'))
        except Exception as e:
            db_ok = False
            logger.error(f'Database health check failed: {e}')

        sweeper = app.config.get('SESSION_SWEEPER')

        return jsonify({
            'status': 'healthy' if db_ok else 'degraded',
            'database': {
                'connected': db_ok,
                'type': 'sqlite' if config.database.is_sqlite else 'postgresql',
            },
            'sweeper': sweeper.stats if sweeper else {'running': False},
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'service': 'Pigeon Post Service API',
        }), 200 if db_ok else 503

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(PigeonPostError)
    def domain_error(e: PigeonPostError):
        if isinstance(e, StorageError):
            logger.error(f'Storage failure: {e.detail}')
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        if e.code == 404:
            return jsonify({'error': 'Not found'}), 404
        return jsonify({'error': e.description}), e.code

    @app.errorhandler(Exception)
    def server_error(e: Exception):
        logger.exception(f'Server error: {e}')
        return jsonify({'error': 'Internal server error'}), 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = int(os.environ.get('PORT', config.port))

    logger.info(f'Pigeon Post Service API running on http://localhost:{port}')
    logger.info(f'Frontend URL: {config.frontend_url}')
    logger.info(f'API health: http://localhost:{port}/api/health')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
        use_reloader=False,  # A reloader would start a second sweeper thread
    )


if __name__ == '__main__':
    run_development_server()
