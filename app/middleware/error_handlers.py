import logging

from flask import jsonify
from postgrest.exceptions import APIError

from ..utils.errors import ApiError

logger = logging.getLogger(__name__)

def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def api_error(e):
        return jsonify(ok=False, error=e.message), e.status_code

    @app.errorhandler(APIError)
    def backend_error(e):
        # Error dari PostgREST/Supabase diteruskan apa adanya
        logger.error("Supabase error: code=%s message=%s", getattr(e, "code", None), e.message)
        return jsonify(ok=False, error=e.message or str(e)), 500

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify(ok=False, error="Bad Request", detail=str(e)), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify(ok=False, error="Not Found"), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify(ok=False, error="Method Not Allowed"), 405

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify(ok=False, error="Internal Server Error"), 500
