import os
from datetime import timedelta

from flask import Flask, g

from .config import Config


def create_app(config_object=None, **overrides):
    # Templates resolve from the project root (one level up from this package)
    root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
    templates_dir = os.path.join(root_dir, "templates")
    app = Flask(__name__, template_folder=templates_dir)
    app.config.from_object(config_object or Config)
    app.config.update(overrides)
    app.permanent_session_lifetime = timedelta(seconds=app.config["SESSION_LIFETIME_SECONDS"])
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    from .formatting import register_filters
    register_filters(app)

    from .auth import auth_bp
    from .dashboard import dashboard_bp
    from .members import members_bp
    from .loans import loans_bp
    from .contributions import contributions_bp
    from .fines import fines_bp
    from .extras import extras_bp
    from .settings import settings_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(members_bp)
    app.register_blueprint(loans_bp)
    app.register_blueprint(contributions_bp)
    app.register_blueprint(fines_bp)
    app.register_blueprint(extras_bp)
    app.register_blueprint(settings_bp)

    from .cli import register_cli
    register_cli(app)

    @app.context_processor
    def inject_session():
        from .auth.session import SessionContext
        return {
            "current_session": SessionContext.current(),
            "auto_refresh": g.get("auto_refresh", False),
        }

    app.logger.debug("SACCO portal configured for %s", app.config["SACCO_API_URL"])
    return app
