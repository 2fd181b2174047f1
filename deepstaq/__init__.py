"""Flask application factory."""
import os
import traceback

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from deepstaq.database import init_db


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.json.sort_keys = app.config.get('JSON_SORT_KEYS', False)

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Prometheus metrics instrumentation
    from deepstaq.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: trust X-Forwarded-* from the reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Identity context: g.user / g.tenant_id from the bearer token
    from deepstaq.middleware import load_user

    @app.before_request
    def before_request_handler():
        """Load user and tenant context for each request."""
        load_user()

    # Error Handlers
    from deepstaq.exceptions import DeepstaqError

    @app.errorhandler(DeepstaqError)
    def handle_deepstaq_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"DeepstaqError [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"DeepstaqError [{error.status_code}]: {error.message}")
        response = jsonify(error.to_dict())
        response.status_code = error.status_code
        if error.status_code == 401:
            response.headers['WWW-Authenticate'] = 'Bearer'
        return response

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Not Found'}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({'status': 'error', 'message': 'Method Not Allowed'}), 405

    @app.errorhandler(Exception)
    def internal_error(error):
        if isinstance(error, HTTPException):
            return jsonify({'status': 'error', 'message': error.description}), error.code

        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from deepstaq.blueprints.main import main_bp
    from deepstaq.blueprints.metrics import metrics_bp
    from deepstaq.blueprints.movements import movements_bp
    from deepstaq.blueprints.reports import reports_bp
    from deepstaq.blueprints.dashboard import dashboard_bp
    from deepstaq.blueprints.catalog import catalog_bp
    from deepstaq.blueprints.admin import admin_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(metrics_bp)
    app.register_blueprint(movements_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(admin_bp)

    # Register CLI commands
    from deepstaq.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
