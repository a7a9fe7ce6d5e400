# server/linkhealth/__init__.py

import atexit
import logging
from datetime import datetime
from typing import Union

from flask import Flask, jsonify, request
from flask_cors import CORS
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import Config, config_by_name
from .extensions import db, jwt, migrate

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config: Union[str, type, None] = None, health_service=None) -> Flask:
    """Create and configure the Flask application"""
    if isinstance(config, str):
        config_class = config_by_name.get(config, Config)
    else:
        config_class = config or Config

    app = Flask(__name__)
    app.config.from_object(config_class)

    initialize_extensions(app)

    with app.app_context():
        initialize_database(app)

    initialize_health_monitoring(app, health_service)
    register_blueprints(app)
    register_error_handlers(app)
    register_root_endpoints(app)

    logger.info(f"Application initialized in {app.config.get('FLASK_ENV', 'production')} mode")

    return app


def initialize_extensions(app: Flask) -> None:
    """Initialize Flask extensions"""
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    cors_origins = list(dict.fromkeys(filter(None, [
        *app.config.get("CORS_ORIGINS", []),
        app.config.get("BASE_URL"),
    ])))

    CORS(app,
         resources={r"/api/*": {"origins": cors_origins}},
         supports_credentials=True,
         allow_headers=['Content-Type', 'Authorization', 'X-Requested-With'],
         methods=['GET', 'POST', 'OPTIONS'],
         max_age=3600)

    logger.info(f"CORS initialized with origins: {cors_origins}")


def initialize_database(app: Flask) -> None:
    """Create tables that do not exist yet"""
    from . import models  # noqa: F401 - registers the tables

    try:
        db.create_all()
        logger.info("Database tables created/verified")
    except SQLAlchemyError as e:
        logger.error(f"Error creating tables: {e}")
        if app.config.get('FLASK_ENV') == 'production':
            raise


def initialize_health_monitoring(app: Flask, health_service=None) -> None:
    """Attach the health service and start the background scheduler"""
    from .services.health_service import HealthService
    from .services.scheduler import HealthScheduler

    service = health_service or HealthService.from_config(app.config)
    app.extensions["link_health"] = service

    scheduler = HealthScheduler(
        app,
        service,
        interval_minutes=app.config.get("HEALTH_TICK_MINUTES", 15),
        max_workers=app.config.get("HEALTH_MAX_WORKERS", 5),
    )
    app.extensions["link_health_scheduler"] = scheduler

    if app.config.get("HEALTH_SCHEDULER_ENABLED"):
        scheduler.start()
        atexit.register(scheduler.stop)
    else:
        logger.info("Link health scheduler disabled")


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints"""
    from .routes import health_bp
    app.register_blueprint(health_bp, url_prefix='/api/health')
    logger.info("Health blueprint registered at /api/health")


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the application"""

    @app.errorhandler(400)
    def bad_request(error):
        logger.warning(f"Bad request: {error}")
        return jsonify({
            'success': False,
            'error': 'Bad request',
            'message': str(error.description) if hasattr(error, 'description') else 'Invalid request'
        }), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Not found',
            'message': 'The requested resource was not found'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'success': False,
            'error': 'Method not allowed',
            'message': f'The {request.method} method is not allowed for this endpoint'
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}", exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Internal server error',
            'message': 'An unexpected error occurred. Please try again later.'
        }), 500


def register_root_endpoints(app: Flask) -> None:
    """Register root-level endpoints"""

    @app.route('/health')
    def service_health():
        """Liveness endpoint for the service itself"""
        status: dict = {
            'status': 'healthy',
            'service': 'savlink-health',
            'timestamp': datetime.utcnow().isoformat() + 'Z',
            'checks': {},
        }

        try:
            db.session.execute(text('SELECT 1'))
            status['checks']['database'] = {'status': 'healthy'}
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            status['checks']['database'] = {'status': 'unhealthy', 'error': str(e)}
            status['status'] = 'degraded'

        scheduler = app.extensions.get("link_health_scheduler")
        status['checks']['scheduler'] = {
            'status': 'running' if scheduler is not None and scheduler.running else 'stopped'
        }

        return jsonify(status), 200 if status['status'] == 'healthy' else 503
