# api_relawan/app/__init__.py

from flask import Flask
from .config import load_config
from . import extensions
from .middleware.error_handlers import register_error_handlers

# Import blueprints
from .blueprints.members.routes import members_bp
from .blueprints.events.routes import events_bp
from .blueprints.checkin.routes import checkin_bp
from .blueprints.alumni.routes import alumni_bp
from .blueprints.wa_group.routes import waha_bp, wa_group_bp
from .blueprints.settings.routes import settings_bp
from .blueprints.roles.routes import roles_bp
from .blueprints.assignments.routes import assignments_bp

def create_app(config_object=None):
    app = Flask(__name__)
    load_config(app, config_object)
    app.url_map.strict_slashes = False

    # Initialize extensions (Celery binding, Supabase, CORS)
    extensions.init_app(app)

    # Register blueprints DENGAN url_prefix yang jelas
    app.register_blueprint(members_bp, url_prefix="/api/members")
    app.register_blueprint(events_bp, url_prefix="/api/events")
    app.register_blueprint(checkin_bp, url_prefix="/api")
    app.register_blueprint(alumni_bp, url_prefix="/api/alumni")
    app.register_blueprint(waha_bp, url_prefix="/api/waha")
    app.register_blueprint(wa_group_bp, url_prefix="/api/wa-group")
    app.register_blueprint(settings_bp, url_prefix="/api/settings")
    app.register_blueprint(roles_bp, url_prefix="/api/roles")
    app.register_blueprint(assignments_bp, url_prefix="/api/assignments")

    # Error handlers
    register_error_handlers(app)

    @app.get("/health")
    def health():
        from .extensions import get_supabase
        return {
            "ok": True,
            "supabase": bool(get_supabase()),
        }

    return app
